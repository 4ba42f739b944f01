from dataclasses import asdict
import logging

from fastapi import APIRouter, Body, HTTPException, Response

from schemas.blueprint import validate_payload, validate_xml
from schemas.convert import LayoutResponse, ValidateResponse
from services.blueprint_checks import check_blueprint
from services.bpmn_svc import BlueprintConverter, layout_summary
from services.errors import UnsupportedTopologyError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/")
def root():
    return {"message": "Blueprint BPMN converter bezi!"}


def _as_bpmn_download(xml_string: str, filename: str):
    return Response(
        content=xml_string,
        media_type="application/bpmn+xml",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _unwrap(payload: dict):
    """
    Klient môže poslať obálku {"blueprint": {...}, "name": ..., "pretty": ...};
    inak očakávame priamo blueprint.
    """
    if not isinstance(payload, dict) or not payload:
        raise HTTPException(status_code=400, detail="Payload je povinný.")
    blueprint = payload.get("blueprint")
    if isinstance(blueprint, dict):
        return blueprint, payload.get("name"), payload.get("pretty")
    return payload, payload.get("name"), None


def _build(converter: BlueprintConverter, blueprint: dict, name):
    validate_payload(blueprint)
    try:
        return converter.build(blueprint, name=name)
    except UnsupportedTopologyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/blueprint/convert")
async def convert_blueprint(payload: dict = Body(...)):
    """
    Export blueprint ako BPMN 2.0 XML (s DI layoutom) na stiahnutie.
    """
    blueprint, name, pretty = _unwrap(payload)
    converter = BlueprintConverter()
    result = _build(converter, blueprint, name)
    try:
        xml = await converter.to_xml(result, pretty=pretty)
        validate_xml(xml)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = f"{name or 'process'}.bpmn"
    return _as_bpmn_download(xml, filename)


@router.post("/blueprint/layout", response_model=LayoutResponse)
def layout_blueprint(payload: dict = Body(...)):
    blueprint, name, _ = _unwrap(payload)
    result = _build(BlueprintConverter(), blueprint, name)
    return layout_summary(result)


@router.post("/blueprint/validate", response_model=ValidateResponse)
def validate_blueprint_endpoint(payload: dict = Body(...)):
    blueprint, _, _ = _unwrap(payload)
    validate_payload(blueprint)
    issues = check_blueprint(blueprint)
    for issue in issues:
        if issue.severity == "error":
            logger.warning("Blueprint check %s: %s", issue.code, issue.message)
    return {"issues": [asdict(issue) for issue in issues]}
