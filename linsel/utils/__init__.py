from .paths import derived_path
from .plotting_config import DEFAULT_PLOT_CFG, PlottingConfig
from .random import make_rng


__all__ = [
    "DEFAULT_PLOT_CFG",
    "PlottingConfig",
    "derived_path",
    "make_rng",
]
