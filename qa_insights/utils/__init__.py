"""
Utility modules for qa-insights
"""
from .config_loader import DataAccessConfig, load_data_access_config

__all__ = [
    'DataAccessConfig',
    'load_data_access_config',
]
