import pytest

from slot_swapper_backend.database import models as db_models
from slot_swapper_backend.database.db_enums import SlotStatus, SwapDecision, SwapStatus
from slot_swapper_backend.models import swaps as swap_models
from slot_swapper_backend.services.swap_service import SwapRequestService

from tests.constants import TEST_ALICE_SLOT_ID, TEST_BOB_SLOT_ID, TEST_CAROL_SLOT_ID


@pytest.mark.anyio
class TestSwapRequestService:

    async def test_propose_from_api_payload(
        self,
        swap_request_service: SwapRequestService,
        alice: db_models.Users
    ):
        payload = swap_models.SwapRequestCreate(my_slot_id=TEST_ALICE_SLOT_ID, their_slot_id=TEST_BOB_SLOT_ID)
        result = await swap_request_service.propose_for_api(payload, alice)
        assert result.request.requester_id == alice.id
        assert result.request.message == ''

    async def test_incoming_and_outgoing(
        self,
        swap_request_service: SwapRequestService,
        alice: db_models.Users,
        bob: db_models.Users,
        carol: db_models.Users
    ):
        await swap_request_service.propose_for_api(
            swap_models.SwapRequestCreate(my_slot_id=TEST_ALICE_SLOT_ID, their_slot_id=TEST_BOB_SLOT_ID, message="first"),
            alice
        )

        incoming = await swap_request_service.get_incoming_for_api(bob)
        print(f"\n--- Bob's incoming: {[r.message for r in incoming]} ---")
        assert len(incoming) == 1
        assert isinstance(incoming[0], swap_models.SwapRequestDetailRead)
        assert incoming[0].requester.name == "Alice"
        assert incoming[0].my_slot.id == TEST_ALICE_SLOT_ID
        assert incoming[0].their_slot.status == SlotStatus.SWAP_PENDING

        outgoing = await swap_request_service.get_outgoing_for_api(alice)
        assert [r.id for r in outgoing] == [incoming[0].id]
        assert await swap_request_service.get_incoming_for_api(carol) == []

    async def test_listing_by_status(
        self,
        swap_request_service: SwapRequestService,
        alice: db_models.Users,
        bob: db_models.Users
    ):
        proposal = await swap_request_service.propose_for_api(
            swap_models.SwapRequestCreate(my_slot_id=TEST_ALICE_SLOT_ID, their_slot_id=TEST_BOB_SLOT_ID),
            alice
        )
        await swap_request_service.respond_for_api(proposal.request.id, SwapDecision.REJECT, bob)

        assert await swap_request_service.get_incoming_for_api(bob) == []
        rejected = await swap_request_service.get_incoming_for_api(bob, SwapStatus.REJECTED)
        assert [r.id for r in rejected] == [proposal.request.id]

    async def test_cancel_and_status(
        self,
        swap_request_service: SwapRequestService,
        bob: db_models.Users,
        carol: db_models.Users
    ):
        proposal = await swap_request_service.propose_for_api(
            swap_models.SwapRequestCreate(my_slot_id=TEST_CAROL_SLOT_ID, their_slot_id=TEST_BOB_SLOT_ID),
            carol
        )
        status = await swap_request_service.get_status_for_api(proposal.request.id, bob)
        assert status.consistent

        result = await swap_request_service.cancel_for_api(proposal.request.id, carol)
        assert set(result.released_slot_ids) == {TEST_CAROL_SLOT_ID, TEST_BOB_SLOT_ID}
