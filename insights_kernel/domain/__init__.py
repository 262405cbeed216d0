"""Pure domain helpers for the kernel (no I/O)."""

from insights_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]
