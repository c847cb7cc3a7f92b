from fastapi import Request

from dice_temple.services.room_hub import RoomHub


def get_room_hub(request: Request) -> RoomHub:
    return request.app.state.room_hub
