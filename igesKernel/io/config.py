"""
Solver configuration.

The closest-point solver is driven by four empirical constants inherited
from the IGES toolbox. They are kept as defaults of SolverSettings and can
be overridden in code or from a YAML file:

    solver:
      max_iter: 50
      damping: 0.7
      step_tol: 1.0e-20
      degeneracy_tol: 1.0e-10

Changing them alters convergence behavior, so every override is logged.
"""

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Any, Union

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverSettings:
    """
    Parameters of the damped Newton iteration.

    Attributes:
        max_iter: Iteration cap per query
        damping: Factor applied to every Newton step (under-relaxation)
        step_tol: Convergence threshold on the squared step norm
        degeneracy_tol: Iteration stops when |det(H)| falls below this
    """
    max_iter: int = 50
    damping: float = 0.7
    step_tol: float = 1e-20
    degeneracy_tol: float = 1e-10

    def __post_init__(self):
        if isinstance(self.max_iter, bool) or not isinstance(self.max_iter, int) or self.max_iter < 1:
            raise ValueError(f"max_iter must be a positive integer, got {self.max_iter}")
        if not 0.0 < self.damping <= 1.0:
            raise ValueError(f"damping must lie in (0, 1], got {self.damping}")
        if self.step_tol <= 0.0:
            raise ValueError(f"step_tol must be positive, got {self.step_tol}")
        if self.degeneracy_tol <= 0.0:
            raise ValueError(f"degeneracy_tol must be positive, got {self.degeneracy_tol}")


DEFAULT_SETTINGS = SolverSettings()


def settings_from_config(config: Dict[str, Any]) -> SolverSettings:
    """
    Build SolverSettings from a configuration mapping.

    Parameters:
        config: Mapping with an optional "solver" section

    Returns:
        SolverSettings with the defaults overridden by the section's keys
    """
    section = config.get("solver") or {}
    if not isinstance(section, dict):
        raise ValueError(f"'solver' section must be a mapping, got {type(section).__name__}")

    known = {f.name for f in fields(SolverSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown solver settings: {', '.join(unknown)}")

    overrides = {}
    for key, value in section.items():
        overrides[key] = value if key == "max_iter" else float(value)
        if overrides[key] != getattr(DEFAULT_SETTINGS, key):
            logger.warning("Solver setting %s overridden: %r -> %r",
                           key, getattr(DEFAULT_SETTINGS, key), overrides[key])

    return replace(DEFAULT_SETTINGS, **overrides)


def load_config(filename: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a configuration mapping from a YAML file.

    An empty file yields an empty mapping.
    """
    path = Path(filename)
    with path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    logger.debug("Loaded configuration from %s", path)
    return config


def load_solver_settings(filename: Union[str, Path]) -> SolverSettings:
    """Read SolverSettings from the "solver" section of a YAML file."""
    return settings_from_config(load_config(filename))
