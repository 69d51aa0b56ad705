"""
Engine configuration: in-code defaults with optional JSON overrides.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'valuation': {
        'equity_risk_premium': 0.055,  # 5.5% - historical market premium
        'cost_of_debt': 0.05,
        'perpetuity_growth_rate': 0.025,  # 2.5% long-term GDP growth
        'projection_years': 5,
        'nwc_pct_of_revenue': 0.10,
        'allow_negative_revenue': True,
    },
    'sensitivity': {
        'wacc_spread': 0.02,
        'wacc_step': 0.005,
        'growth_min': 0.01,
        'growth_max': 0.04,
        'growth_step': 0.005,
        'axis_decimals': 3,
    },
    'reverse_dcf': {
        'growth_low': -0.10,
        'growth_high': 0.50,
        'tolerance': 1e-4,
        'max_iterations': 50,
        'perpetuity_growth_rate': 0.025,
        'raise_on_failure': False,
    },
    'scenarios': {
        'max_workers': 3,
        'fade_rate': 0.02,
        'max_base_growth': 0.15,
        'final_year_growth_floor': 0.03,
        'min_tax_rate': 0.21,
        'base_gross_margin_factor': 0.98,
        'base_operating_margin_factor': 0.95,
        'bull': {'growth_factor': 1.3, 'gross_margin_factor': 1.02, 'operating_margin_factor': 1.1},
        'bear': {'growth_factor': 0.5, 'gross_margin_factor': 0.95, 'operating_margin_factor': 0.8},
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
    },
}


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: Optional[Union[str, Path]] = None,
                overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Return a fresh config dict: defaults, then the JSON file, then ``overrides``."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        config_path = Path(path)
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
            if not isinstance(file_config, dict):
                raise ValueError("top-level JSON value must be an object")
            _deep_merge(config, file_config)
            logger.info("Loaded configuration from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file %s not found; using defaults", config_path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not load config %s: %s; using defaults", config_path, exc)

    if overrides:
        _deep_merge(config, copy.deepcopy(dict(overrides)))

    return config


def get_section(config: Optional[Mapping[str, Any]], section: str) -> Dict[str, Any]:
    """Section of ``config`` layered over its defaults; ``None`` means all defaults."""
    merged = copy.deepcopy(DEFAULT_CONFIG.get(section, {}))
    if config:
        _deep_merge(merged, config.get(section) or {})
    return merged
