import pytest

from stampcard.schemas.sync import SyncOperation, SyncOperationType
from stampcard.services.sync.outbox import DEAD_LETTER_KEY, SyncQueue
from stampcard.services.sync.retry import RetryDecision, RetryPolicy


@pytest.mark.asyncio
async def test_queue_returns_operations_in_enqueue_order(memory_store) -> None:
    queue = SyncQueue(memory_store)

    first = await queue.add(SyncOperationType.UPDATE, "customer", "cust-1", {"a": 1})
    second = await queue.add("delete", "customerReward", "r1")

    operations = await queue.get_all()
    assert [operation.id for operation in operations] == [first.id, second.id]
    assert operations[1].type is SyncOperationType.DELETE
    assert await queue.count() == 2

    await queue.remove(first)
    assert [operation.id for operation in await queue.get_all()] == [second.id]

    await queue.clear()
    assert await queue.count() == 0


@pytest.mark.asyncio
async def test_requeue_rewrites_entry_in_place(memory_store) -> None:
    queue = SyncQueue(memory_store)
    operation = await queue.add(SyncOperationType.UPDATE, "customer", "cust-1", {"a": 1})

    await queue.save(operation.model_copy(update={"retries": 2}))

    stored = await queue.get_all()
    assert len(stored) == 1
    assert stored[0].retries == 2


@pytest.mark.asyncio
async def test_dead_letters_are_capped(memory_store) -> None:
    queue = SyncQueue(memory_store, dead_letter_limit=2)
    for index in range(3):
        operation = await queue.add(SyncOperationType.UPDATE, "customer", f"cust-{index}", {"i": index})
        await queue.dead_letter(operation, "remote unavailable")

    letters = await queue.dead_letters()
    assert await queue.count() == 0
    assert [letter["operation"]["entityId"] for letter in letters] == ["cust-1", "cust-2"]
    assert letters[-1]["reason"] == "remote unavailable"
    assert len(await memory_store.get(DEAD_LETTER_KEY)) == 2


def test_retry_policy_drops_on_third_failure() -> None:
    policy = RetryPolicy(max_retries=3)

    operation = SyncOperation(
        id="op-1",
        type=SyncOperationType.UPDATE,
        entity_type="customer",
        entity_id="cust-1",
        data={},
        timestamp=1,
    )

    decisions = []
    for _ in range(3):
        decision, operation = policy.on_failure(operation)
        decisions.append(decision)

    assert decisions == [
        RetryDecision.RETRY_LATER,
        RetryDecision.RETRY_LATER,
        RetryDecision.PERMANENTLY_DROPPED,
    ]
    assert operation.retries == 3
