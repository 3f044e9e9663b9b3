"""Taichi runtime selection."""

from __future__ import annotations

import logging
from typing import Literal

import taichi as ti

logger = logging.getLogger(__name__)

Backend = Literal["auto", "cpu", "gpu"]


def init_taichi(backend: Backend = "auto", seed: int = 42) -> str:
    """Initialize the Taichi runtime used by the intersection kernels.

    With ``"auto"`` a GPU backend is tried first and the CPU backend is used
    if none is available.

    Args:
        backend: "auto", "cpu" or "gpu".
        seed: Taichi's internal random seed.

    Returns:
        The name of the backend that was initialized.
    """
    if backend == "cpu":
        ti.init(arch=ti.cpu, random_seed=seed)
        return "cpu"

    try:
        ti.init(arch=ti.gpu, random_seed=seed)
        logger.info("Using GPU backend")
        return "gpu"
    except Exception as exc:
        if backend == "gpu":
            raise
        logger.info("GPU backend unavailable (%s), falling back to CPU", exc)
        ti.init(arch=ti.cpu, random_seed=seed)
        return "cpu"
