"""Unit tests for TransferQueue."""

from __future__ import annotations

import pytest

from remote_editor.errors import DuplicateTransferError
from remote_editor.models.transfer import TransferDirection, TransferStatus
from remote_editor.services.transfer_queue import TransferQueue


def _add(queue: TransferQueue, local_path: str = "/tmp/m/a.txt", **overrides):
    kwargs = {
        "direction": TransferDirection.UPLOAD,
        "remote_path": "/var/www/a.txt",
        "local_path": local_path,
        "size": 10,
    }
    kwargs.update(overrides)
    return queue.add_file(**kwargs)


class TestTransferQueueDedup:
    """Tests for (direction, local_path) uniqueness."""

    def test_duplicate_pending_rejected(self):
        """A second upload to the same local path is rejected while the first is pending."""
        queue = TransferQueue()
        _add(queue)

        with pytest.raises(DuplicateTransferError):
            _add(queue)

        assert queue.stats.enqueue_total == 1
        assert queue.stats.dedup_total == 1

    def test_duplicate_transferring_rejected(self):
        queue = TransferQueue()
        item = _add(queue)
        queue.change_status(item, TransferStatus.TRANSFERRING)

        with pytest.raises(DuplicateTransferError):
            _add(queue)

    @pytest.mark.parametrize("final", [TransferStatus.DONE, TransferStatus.ERROR])
    def test_enqueue_after_terminal_succeeds(self, final):
        """Once the first item finished, the same local path can be enqueued again."""
        queue = TransferQueue()
        item = _add(queue)
        queue.change_status(item, TransferStatus.TRANSFERRING)
        queue.change_status(item, final)

        second = _add(queue)

        assert second is not item
        assert second.status == TransferStatus.PENDING

    def test_other_direction_allowed(self):
        queue = TransferQueue()
        _add(queue)

        item = _add(queue, direction=TransferDirection.DOWNLOAD)

        assert item.direction == TransferDirection.DOWNLOAD

    def test_local_path_normalized(self):
        queue = TransferQueue()
        _add(queue, local_path="/tmp/m/a.txt")

        with pytest.raises(DuplicateTransferError):
            _add(queue, local_path="/tmp//m/a.txt")

    def test_exists_file(self):
        queue = TransferQueue()
        item = _add(queue)

        assert queue.exists_file("/tmp/m/a.txt") is True
        assert queue.exists_file("/tmp/m/b.txt") is False

        queue.change_status(item, TransferStatus.ERROR, error="boom")
        assert queue.exists_file("/tmp/m/a.txt") is False


class TestTransferQueueStatus:
    """Tests for the status lifecycle."""

    def test_forward_moves(self):
        queue = TransferQueue()
        item = _add(queue)

        queue.change_status(item, TransferStatus.TRANSFERRING)
        queue.change_status(item, TransferStatus.DONE)

        assert item.status == TransferStatus.DONE
        assert queue.stats.done_total == 1
        assert queue.active == []

    def test_pending_can_fail_directly(self):
        queue = TransferQueue()
        item = _add(queue)

        queue.change_status(item, TransferStatus.ERROR, error="refused")

        assert item.error == "refused"
        assert queue.stats.error_total == 1

    def test_backwards_move_rejected(self):
        queue = TransferQueue()
        item = _add(queue)
        queue.change_status(item, TransferStatus.TRANSFERRING)

        with pytest.raises(ValueError):
            queue.change_status(item, TransferStatus.PENDING)

    @pytest.mark.parametrize("final", [TransferStatus.DONE, TransferStatus.ERROR])
    def test_terminal_is_final(self, final):
        queue = TransferQueue()
        item = _add(queue)
        queue.change_status(item, final)

        for status in TransferStatus:
            with pytest.raises(ValueError):
                queue.change_status(item, status)


class TestTransferQueueHistory:
    """Tests for the bounded history."""

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TransferQueue(history_size=0)

    def test_history_bounded(self):
        queue = TransferQueue(history_size=3)
        items = []
        for i in range(5):
            item = _add(queue, local_path=f"/tmp/m/{i}.txt")
            queue.change_status(item, TransferStatus.DONE)
            items.append(item)

        assert queue.history == [items[4], items[3], items[2]]
        assert queue.stats.evicted_total == 2

    def test_default_cap_is_fifty(self):
        queue = TransferQueue()
        for i in range(60):
            item = _add(queue, local_path=f"/tmp/m/{i}.txt")
            queue.change_status(item, TransferStatus.DONE)

        assert len(queue.history) == 50

    def test_evicted_active_item_still_deduplicated(self):
        queue = TransferQueue(history_size=1)
        _add(queue, local_path="/tmp/m/a.txt")
        _add(queue, local_path="/tmp/m/b.txt")

        with pytest.raises(DuplicateTransferError):
            _add(queue, local_path="/tmp/m/a.txt")

    def test_clear_keeps_active(self):
        queue = TransferQueue()
        done = _add(queue, local_path="/tmp/m/a.txt")
        queue.change_status(done, TransferStatus.DONE)
        active = _add(queue, local_path="/tmp/m/b.txt")

        queue.clear()

        assert queue.history == [active]

    def test_on_add_listener(self):
        queue = TransferQueue()
        seen = []
        unsubscribe = queue.on_add(seen.append)

        first = _add(queue, local_path="/tmp/m/a.txt")
        unsubscribe()
        _add(queue, local_path="/tmp/m/b.txt")

        assert seen == [first]
