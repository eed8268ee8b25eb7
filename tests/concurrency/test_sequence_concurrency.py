"""
Sequence safety under concurrent callers.

Sequence numbers come from a counter row incremented by a single atomic
UPDATE ... RETURNING; no two callers may observe the same value and no
value is ever reused.

Run with: pytest tests/concurrency/test_sequence_concurrency.py -v
Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from procurement_kernel.domain.documents import DocumentType
from procurement_kernel.services.sequence_allocator import SequenceAllocator

pytestmark = pytest.mark.slow_locks

THREADS = 6
PER_THREAD = 10


class TestConcurrentAllocation:

    def test_distinct_values(self, allocator):
        def worker(_):
            return [allocator.next(DocumentType.PURCHASE_ORDER) for _ in range(PER_THREAD)]

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            results = [v for batch in pool.map(worker, range(THREADS)) for v in batch]

        assert len(results) == THREADS * PER_THREAD
        assert sorted(results) == list(range(1, THREADS * PER_THREAD + 1))

    def test_each_caller_sees_increasing_values(self, allocator):
        def worker(_):
            return [allocator.next(DocumentType.SERVICE_ORDER) for _ in range(PER_THREAD)]

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            batches = list(pool.map(worker, range(THREADS)))

        for batch in batches:
            assert batch == sorted(batch)

    def test_first_use_race(self, session_factory):
        """Counters created lazily by racing callers still never collide."""
        allocator = SequenceAllocator(session_factory)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            results = list(pool.map(
                lambda _: allocator.next(DocumentType.QUOTE_REQUEST), range(THREADS)
            ))

        assert sorted(results) == list(range(1, THREADS + 1))


class TestConcurrentCreation:

    def test_concurrent_creates_get_unique_numbers(self, service, make_header, actor, priced_item):
        def worker(_):
            document_id = service.create_document(
                DocumentType.PURCHASE_ORDER, make_header(), [priced_item()], actor,
            )
            return service.get_document(DocumentType.PURCHASE_ORDER, document_id).sequence_number

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            numbers = list(pool.map(worker, range(THREADS * 2)))

        assert sorted(numbers) == list(range(1, THREADS * 2 + 1))
        assert len(service.list_documents(DocumentType.PURCHASE_ORDER)) == THREADS * 2
