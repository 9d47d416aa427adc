#!/usr/bin/env python3
"""
resperf API Schemas - Pydantic models for backend payloads

Inbound shapes from the configuration manager (inventory) and the performance
manager (query / query_range responses). Unknown fields are kept so newer
backends do not break validation.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# --- Inventory (configuration manager) ---

class DeviceStatus(BaseModel):
    model_config = ConfigDict(extra="allow")

    state: Optional[str] = None
    health: Optional[str] = None


class Device(BaseModel):
    model_config = ConfigDict(extra="allow")

    deviceID: str
    type: str
    status: DeviceStatus = Field(default_factory=DeviceStatus)
    capacityMiB: Optional[float] = None
    driveCapacityBytes: Optional[float] = None


class Annotation(BaseModel):
    model_config = ConfigDict(extra="allow")

    available: bool = True


class Resource(BaseModel):
    model_config = ConfigDict(extra="allow")

    device: Device
    annotation: Annotation = Field(default_factory=Annotation)
    nodeIDs: List[str] = Field(default_factory=list)
    resourceGroupIDs: List[str] = Field(default_factory=list)

    @property
    def is_allocated(self) -> bool:
        return bool(self.nodeIDs)


class Inventory(BaseModel):
    model_config = ConfigDict(extra="allow")

    count: Optional[int] = None
    resources: List[Resource] = Field(default_factory=list)


class Node(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    resources: List[Resource] = Field(default_factory=list)


# --- PromQL responses (performance manager) ---

class PromQLMetric(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = Field(default=None, alias="__name__")
    data_label: Optional[str] = None
    job: Optional[str] = None
    instance: Optional[str] = None


class PromQLSeries(BaseModel):
    """One series of a range query; values are [unix_seconds, "number"] pairs."""

    metric: PromQLMetric = Field(default_factory=PromQLMetric)
    values: List[Tuple[float, Any]] = Field(default_factory=list)


class PromQLSample(BaseModel):
    """One sample of an instant query."""

    metric: PromQLMetric = Field(default_factory=PromQLMetric)
    value: Optional[Tuple[float, Any]] = None


class PromQLRangeData(BaseModel):
    resultType: str = "matrix"
    result: List[PromQLSeries] = Field(default_factory=list)


class PromQLInstantData(BaseModel):
    resultType: str = "vector"
    result: List[PromQLSample] = Field(default_factory=list)


class APIPromQL(BaseModel):
    """query_range response."""

    status: str = ""
    data: PromQLRangeData = Field(default_factory=PromQLRangeData)
    stats: Optional[Dict[str, Any]] = None


class APIPromQLSingle(BaseModel):
    """query (instant) response."""

    status: str = ""
    data: PromQLInstantData = Field(default_factory=PromQLInstantData)
    stats: Optional[Dict[str, Any]] = None


# --- Outbound ---

class QueryRangeParams(BaseModel):
    query: str
    start: Optional[str] = None
    end: Optional[str] = None
    step: str

    def to_form(self) -> Dict[str, str]:
        """Form fields for the query_range POST; missing bounds are sent empty."""
        return {
            "query": self.query,
            "start": self.start or "",
            "end": self.end or "",
            "step": self.step,
        }
