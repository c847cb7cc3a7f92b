"""
dice_temple.schemas
~~~~~~~~~~~~~~~~~~~
Pydantic schemas and models for the API.
"""
from dice_temple.schemas.api_response import ApiResponse
from dice_temple.schemas.events import EventMessage
from dice_temple.schemas.room import (
    HealthUpdateRequest,
    JoinRequest,
    Roll,
    RollRequest,
    RoomInfoData,
    User,
)

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
