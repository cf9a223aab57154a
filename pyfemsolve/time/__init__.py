"""Time: fixed sequences of (quasi-static) solution times."""

from pyfemsolve.time.stepper import Stepper

__all__ = [
    "Stepper",
]
