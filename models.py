"""
Pydantic Models

Construction-time contract for the grouping transformation, and the request /
response schemas of the grouping API.
"""

from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict, ValidationError
from datetime import datetime

# Upper bound on the number of elements accepted by a single API request
MAX_INPUT_SIZE = 100_000


class ContractViolationError(TypeError):
    """Raised when a grouping is requested with arguments that break its contract."""
    pass


class GroupingContract(BaseModel):
    """What group() requires of its arguments before any element is read"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    projection: Callable[..., Any] = Field(
        ...,
        description="Callable selecting the criterion of each element"
    )
    equivalence: Callable[..., Any] = Field(
        ...,
        description="Equivalence relation over criteria"
    )
    saveable: bool = Field(
        True,
        description="Whether the grouped context allows storing cursors"
    )

    @field_validator('saveable')
    @classmethod
    def validate_saveable(cls, v):
        """Groupings hold two cursors at once, so the context must be multi-pass"""
        if not v:
            raise ValueError("grouped context must be saveable (multi-pass)")
        return v

    @classmethod
    def enforce(cls, projection, equivalence, context) -> "GroupingContract":
        """Validate group() arguments, raising ContractViolationError on failure"""
        try:
            return cls(
                projection=projection,
                equivalence=equivalence,
                saveable=getattr(context, "saveable", False)
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise ContractViolationError(f"invalid grouping arguments ({fields}): {e}") from e


class GroupRequest(BaseModel):
    """Request to group a JSON array"""
    data: List[Any] = Field(
        ...,
        description="Elements to group, in order",
        examples=[[1, 1, 2, 2, 2, 3]]
    )
    projection: str = Field(
        "identity",
        description="Name of a registered projection"
    )
    projection_arg: Optional[Any] = Field(
        None,
        description="Parameter for the projection (divisor, field name...)"
    )
    equivalence: str = Field(
        "equal",
        description="Name of a registered equivalence relation"
    )
    reverse: bool = Field(
        False,
        description="Return groupings from last to first"
    )
    max_groups: Optional[int] = Field(
        None,
        description="Stop after this many groupings",
        ge=1
    )

    @field_validator('data')
    @classmethod
    def validate_data_size(cls, v):
        """Validate the input fits within MAX_INPUT_SIZE"""
        if len(v) > MAX_INPUT_SIZE:
            raise ValueError(f"Input has {len(v)} elements, limit is {MAX_INPUT_SIZE}")
        return v

    @field_validator('projection', 'equivalence')
    @classmethod
    def validate_name(cls, v):
        """Validate registry names are not empty"""
        if not v or not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip().lower()


class GroupingParams(BaseModel):
    """Query parameters for the grouping endpoint"""
    include_performance: bool = Field(
        True,
        description="Attach timing and memory measurements to the response"
    )


class PerformanceMetrics(BaseModel):
    """Timing and memory of one grouping run"""
    processing_time_ms: float = Field(..., description="Wall time in milliseconds", ge=0)
    memory_usage_mb: float = Field(..., description="Peak traced memory in megabytes", ge=0)
    input_size: int = Field(..., description="Number of input elements", ge=0)
    output_size: int = Field(..., description="Number of groupings produced", ge=0)
    projection_calls: int = Field(..., description="Times the projection was invoked", ge=0)


class GroupResponse(BaseModel):
    """Groupings of the request data"""
    ok: bool = Field(True, description="Request success status")
    groups: List[List[Any]] = Field(..., description="Maximal runs of equivalent elements")
    keys: List[Any] = Field(..., description="Criterion of each grouping")
    group_count: int = Field(..., description="Number of groupings returned", ge=0)
    input_size: int = Field(..., description="Number of input elements", ge=0)
    projection: str = Field(..., description="Projection used")
    equivalence: str = Field(..., description="Equivalence used")
    reversed: bool = Field(False, description="Whether groupings are last-to-first")
    performance: Optional[PerformanceMetrics] = Field(None, description="Run measurements")
    timestamp: datetime = Field(..., description="Response timestamp")


class RegistryResponse(BaseModel):
    """Available projections and equivalences"""
    projections: List[str] = Field(..., description="Registered projection names")
    equivalences: List[str] = Field(..., description="Registered equivalence names")


class StatusResponse(BaseModel):
    """Service status response"""
    ok: bool = Field(True, description="Service status")
    status: str = Field(..., description="Status description")
    uptime_seconds: float = Field(..., description="Service uptime in seconds", ge=0)
    requests_processed: int = Field(..., description="Grouping requests served", ge=0)
    memory_usage_mb: Optional[float] = Field(
        None,
        description="Resident memory of the process in megabytes",
        ge=0
    )
    performance_summary: Optional[Dict[str, Any]] = Field(
        None,
        description="Aggregated measurements of grouping runs"
    )


class ErrorResponse(BaseModel):
    """Error response model"""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_type: Optional[str] = Field(None, description="Error type/category")
    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    timestamp: datetime = Field(..., description="Error timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": "Contract violation: invalid grouping arguments (projection)",
                "error_type": "ContractViolationError",
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )
