from fastapi import Request

from gateway import BroadcastGateway
from registry import RoomRegistry


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


def get_gateway(request: Request) -> BroadcastGateway:
    return request.app.state.gateway


def get_game_feed(request: Request):
    return request.app.state.game_feed


def get_user_directory(request: Request):
    return request.app.state.user_directory
