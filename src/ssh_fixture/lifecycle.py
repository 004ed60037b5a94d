"""Thread-safe lifecycle state."""

import threading

from ssh_fixture.types import LifecycleState


class LifecycleFlag:
    """Lifecycle state with atomic compare-and-set transitions.

    Whoever wins a transition is the only caller that should perform its
    side effect.
    """

    def __init__(self, initial: LifecycleState = LifecycleState.NOT_STARTED) -> None:
        self._state = initial
        self._lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    def compare_and_set(self, expected: LifecycleState, new: LifecycleState) -> bool:
        """Move to ``new`` if the current state is ``expected``.

        Args:
            expected: State to transition from
            new: State to transition to

        Returns:
            True if this call performed the transition
        """
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def __repr__(self) -> str:
        return f"LifecycleFlag({self.state.value})"
