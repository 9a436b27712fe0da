"""Configuration for first-hypersurface initial data generation.

Collects every tunable of the angular gauge solve, the worldtube archive
sampling and the strategy selection in one place so a run can be
reproduced from a single JSON file.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger('cce_initial_data.config')


@dataclass
class AngularSolveConfig:
    tolerance: float = 1.0e-10
    max_steps: int = 100
    adjust_volume_gauge: bool = True

    def validate(self) -> None:
        if not isinstance(self.tolerance, (int, float)):
            raise ValueError(f"angular_solve.tolerance must be numeric, got {type(self.tolerance)}")
        if self.tolerance <= 0:
            raise ValueError(f"angular_solve.tolerance must be positive, got {self.tolerance}")
        if not isinstance(self.max_steps, int) or isinstance(self.max_steps, bool):
            raise ValueError(f"angular_solve.max_steps must be int, got {type(self.max_steps)}")
        if self.max_steps < 0:
            raise ValueError(f"angular_solve.max_steps must be non-negative, got {self.max_steps}")
        if not isinstance(self.adjust_volume_gauge, bool):
            raise ValueError(
                f"angular_solve.adjust_volume_gauge must be bool, got {type(self.adjust_volume_gauge)}"
            )


@dataclass
class WorldtubeConfig:
    files: List[str] = field(default_factory=list)
    target_index: int = 0
    target_time: float = 0.0
    interpolation_points: int = 10
    interpolation_order: int = 3

    def validate(self) -> None:
        if not isinstance(self.target_index, int) or self.target_index < 0:
            raise ValueError(f"worldtube.target_index must be a non-negative int, got {self.target_index}")
        if self.files and self.target_index >= len(self.files):
            raise ValueError(
                f"worldtube.target_index ({self.target_index}) out of range for {len(self.files)} files"
            )
        if self.interpolation_points < 2:
            raise ValueError(
                f"worldtube.interpolation_points must be >= 2, got {self.interpolation_points}"
            )
        if self.interpolation_order < 0:
            raise ValueError(
                f"worldtube.interpolation_order must be non-negative, got {self.interpolation_order}"
            )


@dataclass
class InitialDataConfig:
    strategy: str = "inverse_cubic"
    l_max: int = 12
    number_of_radial_points: int = 9
    angular_solve: AngularSolveConfig = field(default_factory=AngularSolveConfig)
    worldtube: WorldtubeConfig = field(default_factory=WorldtubeConfig)

    def validate(self) -> None:
        """Validate strategy name, resolutions and nested sections.

        Raises:
            ValueError: If any value is invalid
        """
        # the strategy registry imports this module
        from ..solvers.cce.hypersurface import INITIAL_DATA_STRATEGIES

        if self.strategy not in INITIAL_DATA_STRATEGIES:
            raise ValueError(
                f"strategy must be one of {tuple(INITIAL_DATA_STRATEGIES)}, got {self.strategy!r}"
            )
        if not isinstance(self.l_max, int) or self.l_max < 2:
            raise ValueError(f"l_max must be an int >= 2, got {self.l_max}")
        if not isinstance(self.number_of_radial_points, int) or self.number_of_radial_points < 2:
            raise ValueError(
                f"number_of_radial_points must be an int >= 2, got {self.number_of_radial_points}"
            )
        self.angular_solve.validate()
        self.worldtube.validate()
        if self.strategy == "generate_psi0" and len(self.worldtube.files) < 2:
            raise ValueError("generate_psi0 needs at least two worldtube files")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'InitialDataConfig':
        config_dict = dict(config_dict)
        try:
            angular = AngularSolveConfig(**config_dict.pop('angular_solve', {}))
            worldtube = WorldtubeConfig(**config_dict.pop('worldtube', {}))
            config = cls(angular_solve=angular, worldtube=worldtube, **config_dict)
        except TypeError as e:
            raise ValueError(f"Unknown configuration key: {e}")
        config.validate()
        return config

    @classmethod
    def from_file(cls, config_path) -> 'InitialDataConfig':
        """Load the configuration from a JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config format is invalid
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file: {e}")

        config = cls.from_dict(config_dict)
        logger.info(f"Loaded initial data config from {config_path}")
        return config
