from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for singleton materialization.

    Pass a value as the container-level ``lock_mode``. Every singleton entity
    bound in that container (and every entity of scope providers it builds)
    uses the selected mode.
    """

    THREAD = "thread"
    """Guard each singleton with its own ``threading.Lock``."""

    NONE = "none"
    """Disable locking around singleton cache reads/writes."""
