from typing import Dict, List

from pydantic import BaseModel


class LayoutResponse(BaseModel):
    positions: Dict[str, List[int]]
    depths: Dict[str, int]
    nodes: Dict[str, Dict[str, float] | None]
    lanes: Dict[str, Dict[str, float]]
    participant: Dict[str, float]
    edges: Dict[str, List[List[float]]]


class IssueOut(BaseModel):
    code: str
    message: str
    severity: str
    node_id: str | None = None


class ValidateResponse(BaseModel):
    issues: List[IssueOut]
