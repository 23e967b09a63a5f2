"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like cache keys, endpoint paths and
resource class names, keeping signatures self-describing.
"""

from typing import Any, Dict, NewType

# === Request Context ===
EndpointPath = NewType("EndpointPath", str)      # Path relative to the API base URL, e.g. '/employees/42'
RequestParams = Dict[str, Any]                   # Query parameters or JSON body fields

# === Resource Classes ===
ResourceClass = NewType("ResourceClass", str)    # Named group sharing one TTL and one rate budget

EMPLOYEES = ResourceClass("employees")
TIME_OFF = ResourceClass("time_off")
REPORTS = ResourceClass("reports")
ANALYTICS = ResourceClass("analytics")
COMPANY = ResourceClass("company")
DEFAULT_RESOURCE_CLASS = ResourceClass("default")

# === Caching Context ===
CacheKey = NewType("CacheKey", str)              # Deterministic signature of method+path+params

# === Tool Context ===
ToolName = NewType("ToolName", str)              # Identity of the calling tool, used in logs
OperationLabel = NewType("OperationLabel", str)  # Human description of a call's purpose
