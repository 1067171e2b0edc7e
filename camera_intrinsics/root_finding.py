"""
root_finding.py

Scalar solvers used to invert distortion functions that have no closed-form
inverse.

Both solvers terminate in bounded time and never raise: a slightly inexact
inverse is returned instead of aborting the caller's loop.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

#: Growth factor used while bracketing the root.
BRACKET_STEP = 1.05


def bisection_solve(
    functor: Callable[[float], float],
    target: float,
    epsilon: float = 1e-10,
    max_iterations: int = 1000,
) -> float:
    """Solve ``functor(x) == target`` for a monotonically increasing *functor*.

    The bracket starts at ``[target, target]``; the lower bound is divided by
    1.05 while ``functor(lower) > target`` and the upper bound multiplied by
    1.05 while ``functor(upper) < target``.  The bracket is then halved until
    its width drops to *epsilon*.

    Args:
        functor: Monotonically increasing scalar function.
        target: Value to reach.
        epsilon: Width of the final bracket.
        max_iterations: Cap applied to each of the bracketing and bisection
            loops.

    Returns:
        Midpoint of the final bracket.  When a budget is exhausted the
        midpoint of the current bracket is returned.
    """
    lower = upper = target

    for _ in range(max_iterations):
        if functor(lower) <= target:
            break
        lower /= BRACKET_STEP
    else:
        logger.debug("Lower bracket not found for target %g", target)

    for _ in range(max_iterations):
        if functor(upper) >= target:
            break
        upper *= BRACKET_STEP
    else:
        logger.debug("Upper bracket not found for target %g", target)

    for _ in range(max_iterations):
        if upper - lower <= epsilon:
            break
        mid = 0.5 * (lower + upper)
        if functor(mid) > target:
            upper = mid
        else:
            lower = mid
    else:
        logger.debug(
            "Bisection stopped with bracket width %g (epsilon %g)", upper - lower, epsilon
        )

    return 0.5 * (lower + upper)


def bisection_radius_solve(
    params: Sequence[float],
    r2: float,
    distortion_functor: Callable[[Sequence[float], float], float],
    epsilon: float = 1e-10,
    max_iterations: int = 1000,
) -> float:
    """Find the undistorted squared radius mapping onto *r2*.

    Solves ``distortion_functor(params, x) == r2`` for *x*.

    Args:
        params: Radial distortion coefficients forwarded to the functor.
        r2: Squared radius of the distorted point.
        distortion_functor: ``f(params, x)`` returning the distorted squared
            radius of an ideal point with squared radius *x*.
        epsilon: Width of the final bracket.
        max_iterations: Cap on every solver loop.

    Returns:
        The undistorted squared radius.
    """
    return bisection_solve(
        lambda x: distortion_functor(params, x),
        r2,
        epsilon=epsilon,
        max_iterations=max_iterations,
    )


def fixed_point_iterate(
    update: Callable[[float], float],
    x0: float,
    iterations: int,
) -> float:
    """Apply ``x = update(x)`` exactly *iterations* times starting at *x0*.

    No convergence test is performed.
    """
    x = x0
    for _ in range(iterations):
        x = update(x)
    return x
