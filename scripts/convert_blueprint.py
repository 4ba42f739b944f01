import argparse
import asyncio
import json
import sys
from pathlib import Path

from core.config import configure_logging
from services.blueprint_checks import check_blueprint
from services.bpmn_svc import BlueprintConverter


def load_blueprint(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    # podporujeme aj obálku {"blueprint_spec": {...}}
    if isinstance(data, dict) and isinstance(data.get("blueprint_spec"), dict):
        return data["blueprint_spec"]
    return data


def main() -> int:
    parser = argparse.ArgumentParser(description="Convert a blueprint JSON file to BPMN 2.0 XML.")
    parser.add_argument("blueprint", help="Path to the blueprint JSON file.")
    parser.add_argument("-o", "--output", help="Output .bpmn path (default: stdout).")
    parser.add_argument("--name", help="Participant (pool) name.")
    parser.add_argument("--pretty", action="store_true", help="Indent the XML output.")
    parser.add_argument("--check", action="store_true", help="Print blueprint issues to stderr first.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
    args = parser.parse_args()

    configure_logging(args.log_level.upper() if args.log_level else None)
    blueprint = load_blueprint(Path(args.blueprint).expanduser())

    if args.check:
        for issue in check_blueprint(blueprint):
            print(f"[{issue.severity}] {issue.code}: {issue.message}", file=sys.stderr)

    converter = BlueprintConverter()
    try:
        result = converter.build(blueprint, name=args.name)
        xml = asyncio.run(converter.to_xml(result, pretty=args.pretty))
    except ValueError as exc:
        print(f"Conversion failed: {exc}", file=sys.stderr)
        return 1

    if args.output:
        out_path = Path(args.output).expanduser()
        out_path.write_text(xml, encoding="utf-8")
        print(f"Wrote {out_path}", file=sys.stderr)
    else:
        print(xml)
    return 0


if __name__ == "__main__":
    sys.exit(main())
