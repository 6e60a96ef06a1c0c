from fastapi import HTTPException, Request

from ridequeue.schemas.results import CommandResult
from ridequeue.services.ride_queue import RideQueueService

def get_ride_queue_service(request: Request) -> RideQueueService:
    return request.app.state.ride_queue_service

def unwrap(result: CommandResult):
    """
    Return the command's value or raise the HTTP error matching its error kind.
    """
    if not result.ok:
        raise HTTPException(status_code=result.error.status_code, detail=result.error.model_dump())
    return result.value
