"""
Configuration loading.
"""

from .config import SolverSettings, DEFAULT_SETTINGS, load_config, load_solver_settings
