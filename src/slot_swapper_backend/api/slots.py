'''
API endpoints for managing a user's own Slots and browsing the marketplace.
'''
from datetime import datetime
from typing import Annotated, Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..database.db_enums import SlotStatus
from ..models import slots as slot_models
from ..services.security import verify_token_and_get_user
from ..services.slot_service import SlotService

class SlotsAPI:
    """
    A class to encapsulate CRUD endpoints for Slots.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/slots",
            tags=["Slots"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_my_slots,
                methods=["GET"],
                response_model=List[slot_models.SlotRead])

        # must be registered before "/{slot_id}"
        self.router.add_api_route(
                "/marketplace",
                self.list_marketplace,
                methods=["GET"],
                response_model=List[slot_models.MarketplaceSlotRead])

        self.router.add_api_route(
                "/{slot_id}",
                self.get_slot,
                methods=["GET"],
                response_model=slot_models.SlotRead)

        self.router.add_api_route(
                "/",
                self.create_slot,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=slot_models.SlotRead)

        self.router.add_api_route(
                "/{slot_id}",
                self.update_slot,
                methods=["PATCH"],
                response_model=slot_models.SlotRead)

        self.router.add_api_route(
                "/{slot_id}",
                self.delete_slot,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_my_slots(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        slot_service: Annotated[SlotService, Depends(SlotService)],
        slot_status: Annotated[Optional[SlotStatus], Query(alias="status")] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[Any]:
        """
        Retrieves the current user's slots, sorted by start time.
        """
        return await slot_service.get_my_slots_for_api(current_user, slot_status, start_date, end_date)

    async def list_marketplace(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        slot_service: Annotated[SlotService, Depends(SlotService)]
    ) -> List[Any]:
        """
        Retrieves upcoming SWAPPABLE slots of every other user.
        """
        return await slot_service.get_marketplace_for_api(current_user)

    async def get_slot(
        self,
        slot_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        slot_service: Annotated[SlotService, Depends(SlotService)]
    ) -> Any:
        return await slot_service.get_slot_for_api(slot_id, current_user)

    async def create_slot(
        self,
        slot_data: slot_models.SlotCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        slot_service: Annotated[SlotService, Depends(SlotService)]
    ) -> Any:
        """
        Creates a new slot owned by the current user.
        """
        return await slot_service.create_slot_for_api(slot_data, current_user)

    async def update_slot(
        self,
        slot_id: UUID,
        slot_data: slot_models.SlotUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        slot_service: Annotated[SlotService, Depends(SlotService)]
    ) -> Any:
        """
        Updates an existing slot. Not allowed while a swap is pending on it.
        """
        return await slot_service.update_slot_for_api(slot_id, slot_data, current_user)

    async def delete_slot(
        self,
        slot_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        slot_service: Annotated[SlotService, Depends(SlotService)]
    ):
        """
        Deletes a slot. Not allowed while a swap is pending on it.
        """
        await slot_service.delete_slot(slot_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
slots_api = SlotsAPI()
router = slots_api.router
