import asyncio

import pytest

from stampcard.schemas.customer import (
    CampaignProgress,
    ProgressKind,
    ProgressStatus,
    RewardProgress,
    RewardType,
    TransactionAction,
)
from stampcard.services.identity import IdentityStore
from stampcard.services.ledger.service import RECORD_KEY, CustomerLedger, ScanExtras


@pytest.mark.asyncio
async def test_record_is_created_lazily_for_provider_id(ledger, memory_store) -> None:
    assert await memory_store.get(RECORD_KEY) is None

    record = await ledger.get_record()

    assert record.customer_id == "cust-1"
    assert (await memory_store.get(RECORD_KEY))["profile"]["id"] == "cust-1"


@pytest.mark.asyncio
async def test_record_falls_back_to_device_id(memory_store) -> None:
    ledger = CustomerLedger(memory_store, IdentityStore(memory_store))

    record = await ledger.get_record()

    assert record.customer_id.startswith("device-")
    assert record.customer_id == await memory_store.get("device_id")


@pytest.mark.asyncio
async def test_three_scans_earn_reward_then_redeem_reseeds(ledger, sync_manager) -> None:
    outcomes = []
    for _ in range(3):
        outcomes.append(
            await ledger.record_scan(
                ProgressKind.REWARD,
                "r1",
                "Free Coffee",
                points_awarded=1,
                points_required=3,
                business_id="biz-1",
                business_name="Bean There",
                extra=ScanExtras(reward_type="free_product", qr_code="REWARD:r1:Free Coffee:3:free_product:"),
            )
        )

    assert [outcome.is_newly_earned for outcome in outcomes] == [False, False, True]
    assert await sync_manager.queue.count() == 0

    record = await ledger.get_record()
    assert record.active_rewards == []
    assert len(record.earned_rewards) == 1
    earned = record.earned_rewards[0]
    assert earned.points_earned == 3
    assert earned.status is ProgressStatus.EARNED
    assert earned.earned_at is not None
    assert len(earned.scan_history) == 3
    assert record.stats.total_scans == 3
    assert record.stats.total_rewards_earned == 1
    assert record.stats.businesses_visited == ["biz-1"]

    redeemed = await ledger.redeem("r1")

    assert redeemed is not None
    assert redeemed.status is ProgressStatus.REDEEMED
    assert redeemed.redeemed_at is not None
    record = await ledger.get_record()
    assert record.earned_rewards == []
    assert [entry.reward_id for entry in record.redeemed_rewards] == ["r1"]
    fresh = record.active_rewards[0]
    assert fresh.points_earned == 0
    assert fresh.scan_history == []
    assert fresh.first_scan_at is None
    assert fresh.points_required == 3
    assert fresh.reward_type is RewardType.FREE_PRODUCT
    assert fresh.qr_code == "REWARD:r1:Free Coffee:3:free_product:"
    assert fresh.business_name == "Bean There"
    assert record.stats.total_rewards_redeemed == 1

    operations = await sync_manager.queue.get_all()
    assert [(operation.entity_type, operation.entity_id) for operation in operations] == [
        ("customer", "cust-1"),
        ("customerRewardRedemption", "r1"),
    ]
    assert operations[1].data["customerId"] == "cust-1"
    assert operations[1].data["rewardId"] == "r1"
    assert operations[1].data["businessId"] == "biz-1"


@pytest.mark.asyncio
async def test_single_scan_meeting_requirement_is_earned_immediately(ledger) -> None:
    outcome = await ledger.record_scan(ProgressKind.REWARD, "company-0000042", "Corner Cafe", 1, 1)

    assert outcome.is_newly_earned is True
    assert outcome.progress.status is ProgressStatus.EARNED
    assert [entry.reward_id for entry in await ledger.list_earned()] == ["company-0000042"]


@pytest.mark.asyncio
async def test_scanning_earned_reward_accumulates_without_retrigger(ledger) -> None:
    await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 1)
    outcome = await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 1)

    assert outcome.is_newly_earned is False
    assert outcome.progress.points_earned == 2
    assert len(await ledger.list_earned()) == 1
    assert (await ledger.get_stats()).total_rewards_earned == 1


@pytest.mark.asyncio
async def test_redeem_without_earned_entry_is_rejected(ledger, sync_manager) -> None:
    await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 5)

    assert await ledger.redeem("r1") is None
    assert await ledger.redeem("unknown") is None
    assert await sync_manager.queue.count() == 0


@pytest.mark.asyncio
async def test_campaign_redemption_uses_campaign_audit_entity(ledger, sync_manager) -> None:
    for _ in range(2):
        await ledger.record_scan(
            ProgressKind.CAMPAIGN,
            "c1",
            "Summer",
            1,
            2,
            extra=ScanExtras(description="Two visits"),
        )

    redeemed = await ledger.redeem_campaign("c1")

    assert redeemed is not None
    record = await ledger.get_record()
    assert record.stats.total_campaigns_earned == 1
    assert record.stats.total_campaigns_redeemed == 1
    assert record.active_campaigns[0].campaign_description == "Two visits"
    operations = await sync_manager.queue.get_all()
    assert operations[-1].entity_type == "customerCampaignRedemption"
    assert operations[-1].data["campaignId"] == "c1"


@pytest.mark.asyncio
async def test_scan_after_redeem_continues_fresh_entry(ledger) -> None:
    await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 1)
    await ledger.redeem("r1")

    outcome = await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 1)

    assert outcome.is_newly_earned is True
    record = await ledger.get_record()
    assert len(record.redeemed_rewards) == 1
    assert len(record.earned_rewards) == 1
    assert record.active_rewards == []


@pytest.mark.asyncio
async def test_update_profile_merges_fields_and_keeps_id(ledger, sync_manager) -> None:
    record = await ledger.update_profile(
        {
            "id": "someone-else",
            "name": "Ada Lovelace",
            "addressLine1": "1 Analytical Way",
            "date_of_birth": "1815-12-10",
            "preferences": {"emailMarketing": True},
            "shoeSize": 9,
        }
    )

    assert record.profile.id == "cust-1"
    assert record.profile.name == "Ada Lovelace"
    assert record.profile.address_line1 == "1 Analytical Way"
    assert record.profile.date_of_birth == "1815-12-10"
    assert record.profile.preferences.email_marketing is True
    assert record.transaction_log[-1].action is TransactionAction.EDIT

    await ledger.update_profile({"city": "London"})
    record = await ledger.get_record()
    assert record.profile.name == "Ada Lovelace"
    assert record.profile.city == "London"
    assert await sync_manager.queue.count() == 2


@pytest.mark.asyncio
async def test_transaction_log_is_capped(memory_store, identity) -> None:
    ledger = CustomerLedger(memory_store, identity, transaction_log_limit=5)

    for index in range(8):
        await ledger.log_event(TransactionAction.ACTION, {"n": index})

    record = await ledger.get_record()
    assert [entry.data["n"] for entry in record.transaction_log] == [3, 4, 5, 6, 7]


@pytest.mark.asyncio
async def test_zero_transaction_log_limit_keeps_no_entries(memory_store, identity) -> None:
    ledger = CustomerLedger(memory_store, identity, transaction_log_limit=0)

    for _ in range(5):
        await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 10)

    record = await ledger.get_record()
    assert record.transaction_log == []
    assert record.stats.total_scans == 5


@pytest.mark.asyncio
async def test_concurrent_scans_are_serialized(ledger) -> None:
    await asyncio.gather(*(ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 100) for _ in range(10)))

    progress = await ledger.get_progress(ProgressKind.REWARD, "r1")
    assert progress.points_earned == 10
    assert (await ledger.get_stats()).total_scans == 10


@pytest.mark.asyncio
async def test_business_ids_are_distinct(ledger) -> None:
    await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", 1, 5, business_id="biz-1")
    await ledger.record_scan(ProgressKind.CAMPAIGN, "c1", "Summer", 1, 5, business_id="biz-2")
    await ledger.record_scan(ProgressKind.REWARD, "r2", "Tea", 1, 5, business_id="biz-1")

    assert await ledger.business_ids() == ["biz-1", "biz-2"]


@pytest.mark.asyncio
async def test_negative_points_are_rejected(ledger) -> None:
    with pytest.raises(ValueError):
        await ledger.record_scan(ProgressKind.REWARD, "r1", "Coffee", -1, 5)


def test_progress_entries_expose_identity_per_kind() -> None:
    reward = RewardProgress(rewardId="r1", rewardName="Coffee", pointsRequired=5)
    campaign = CampaignProgress(campaignId="c1", campaignName="Summer", pointsRequired=5)

    assert (reward.entity_id, reward.display_name) == ("r1", "Coffee")
    assert (campaign.entity_id, campaign.display_name) == ("c1", "Summer")
