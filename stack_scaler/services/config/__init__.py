"""Configuration package (Facade).

Re-exports the runtime configuration types so callers import from one path:

	from stack_scaler.services.config import ScalerConfig
"""

from stack_scaler.services.config.scaler_config import ScalerConfig

__all__ = ["ScalerConfig"]
