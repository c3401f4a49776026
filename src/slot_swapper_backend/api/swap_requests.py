'''
API endpoints for proposing, answering and cancelling slot swaps.
'''
from typing import Annotated, Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from ..database import models as db_models
from ..database.db_enums import SwapStatus
from ..models import swaps as swap_models
from ..services.security import verify_token_and_get_user
from ..services.swap_service import SwapRequestService

class SwapRequestsAPI:
    """
    A class to encapsulate the swap request endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/swap-requests",
            tags=["Swap Requests"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.propose_swap,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=swap_models.ProposeResult)

        self.router.add_api_route(
                "/incoming",
                self.list_incoming,
                methods=["GET"],
                response_model=List[swap_models.SwapRequestDetailRead])

        self.router.add_api_route(
                "/outgoing",
                self.list_outgoing,
                methods=["GET"],
                response_model=List[swap_models.SwapRequestDetailRead])

        self.router.add_api_route(
                "/{request_id}/respond",
                self.respond_to_swap,
                methods=["POST"],
                response_model=swap_models.RespondResult)

        self.router.add_api_route(
                "/{request_id}/status",
                self.get_swap_status,
                methods=["GET"],
                response_model=swap_models.SwapStatusRead)

        self.router.add_api_route(
                "/{request_id}",
                self.cancel_swap,
                methods=["DELETE"],
                response_model=swap_models.CancelResult)

    async def propose_swap(
        self,
        swap_data: swap_models.SwapRequestCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        swap_service: Annotated[SwapRequestService, Depends(SwapRequestService)]
    ) -> Any:
        """
        Offers one of the current user's SWAPPABLE slots for another user's SWAPPABLE slot.
        Both slots are locked until the request is answered or cancelled.
        """
        return await swap_service.propose_for_api(swap_data, current_user)

    async def list_incoming(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        swap_service: Annotated[SwapRequestService, Depends(SwapRequestService)],
        swap_status: Annotated[SwapStatus, Query(alias="status")] = SwapStatus.PENDING
    ) -> List[Any]:
        """Requests other users sent to the current user, newest first."""
        return await swap_service.get_incoming_for_api(current_user, swap_status)

    async def list_outgoing(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        swap_service: Annotated[SwapRequestService, Depends(SwapRequestService)],
        swap_status: Annotated[SwapStatus, Query(alias="status")] = SwapStatus.PENDING
    ) -> List[Any]:
        """Requests the current user sent, newest first."""
        return await swap_service.get_outgoing_for_api(current_user, swap_status)

    async def respond_to_swap(
        self,
        request_id: UUID,
        response_data: swap_models.SwapRespond,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        swap_service: Annotated[SwapRequestService, Depends(SwapRequestService)]
    ) -> Any:
        """
        Accepts or rejects an incoming request. Only the requested user may respond.
        """
        return await swap_service.respond_for_api(request_id, response_data.decision, current_user)

    async def get_swap_status(
        self,
        request_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        swap_service: Annotated[SwapRequestService, Depends(SwapRequestService)]
    ) -> Any:
        return await swap_service.get_status_for_api(request_id, current_user)

    async def cancel_swap(
        self,
        request_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        swap_service: Annotated[SwapRequestService, Depends(SwapRequestService)]
    ) -> Any:
        """
        Withdraws a PENDING request and releases both slots. Only the requester may cancel.
        """
        return await swap_service.cancel_for_api(request_id, current_user)

# Instantiate the class and export its router
swap_requests_api = SwapRequestsAPI()
router = swap_requests_api.router
