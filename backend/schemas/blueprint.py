# blueprint.py  (JSON schéma pre blueprint: nodes + lanes)
import re
import xml.etree.ElementTree as ET
from fastapi import HTTPException
from jsonschema import validate, ValidationError

_ID = {"type": ["string", "integer"]}

SCHEMA = {
    "type": "object",
    "required": ["nodes", "lanes"],
    "properties": {
        "name": {"type": "string"},
        "lanes": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": _ID,
                    "name": {"type": "string"},
                },
                "additionalProperties": True,
            },
        },
        "nodes": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["id", "type", "lane_id"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    # case-insensitive; neznáme typy sa berú ako task
                    "type": {"type": "string", "minLength": 1},
                    "name": {"type": ["string", "null"]},
                    "lane_id": _ID,
                    "next": {
                        "anyOf": [
                            {"type": "null"},
                            {"type": "string", "minLength": 1},
                            {
                                "type": "object",
                                "additionalProperties": {"type": "string", "minLength": 1},
                            },
                        ]
                    },
                },
                "additionalProperties": True,
            },
        },
    },
    "additionalProperties": True,
}


def validate_payload(payload: dict):
    try:
        validate(instance=payload, schema=SCHEMA)
    except ValidationError as e:
        where = "/".join([str(p) for p in e.path]) or "<root>"
        raise HTTPException(
            status_code=400, detail=f"JSON validation error at {where}: {e.message}"
        )


def validate_xml(xml_text: str):
    ET.fromstring(xml_text.encode("utf-8"))  # syntaktická validácia
    head = "\n".join(xml_text.splitlines()[:6])
    pairs = re.findall(r'(xmlns(?::\w+)?)="[^"]+"', head)
    if len(pairs) != len(set(pairs)):
        raise ValueError("Duplicate xmlns detected")
