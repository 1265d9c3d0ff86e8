from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RouteResult(BaseModel):
    """Placement of a single key on the ring."""

    key: str
    position: int
    primary: str
    replicas: List[str]
    degraded: bool = False


class RingSummary(BaseModel):
    virtual_nodes: int
    nodes: List[str]
    positions: int
    ownership: Dict[str, float] = Field(default_factory=dict)


class DistributionRequest(BaseModel):
    keys: List[str]
    remove: Optional[str] = None


class DistributionReport(BaseModel):
    """Consistent hashing versus modulo sharding for a key sample."""

    consistent_hash: Dict[str, int]
    modulo: Dict[str, int]
    consistent_hash_variance: float
    modulo_variance: float
    removed_node: Optional[str] = None
    consistent_hash_remapped: Optional[float] = None
    modulo_remapped: Optional[float] = None
