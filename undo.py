import copy

from config import UNDO_LIMIT


class UndoHistory:
    """
    Bounded stack of form snapshots.

    Field edits are coalesced on the blur boundary: the first change to a
    field records a snapshot and closes the latch, further changes to the
    same field are folded into that step until end_edit() reopens it.
    """

    def __init__(self, limit=UNDO_LIMIT):
        self.limit = limit
        self._stack = []
        self._latch_open = True

    def __len__(self):
        return len(self._stack)

    @property
    def can_undo(self):
        return len(self._stack) > 0

    def push(self, snapshot):
        """Save a snapshot, keeping only the last `limit` states"""
        if len(self._stack) >= self.limit:
            self._stack.pop(0)
        self._stack.append(copy.deepcopy(snapshot))
        self._latch_open = True

    def pop(self):
        """Most recent snapshot, or None when there is nothing to undo"""
        if not self._stack:
            return None
        self._latch_open = True
        return self._stack.pop()

    def record_edit(self, snapshot):
        """Push a snapshot for the first change of a field edit"""
        if not self._latch_open:
            return False
        self.push(snapshot)
        self._latch_open = False
        return True

    def end_edit(self):
        """Field lost focus: the next change starts a new undo step"""
        self._latch_open = True

    def clear(self):
        self._stack = []
        self._latch_open = True
