"""Graph file configuration with Pydantic.

This module implements configuration models using Pydantic for parsing and
validation of YAML/JSON graph files with environment variable overrides. A
graph file lists the nodes and edges to sort together with output settings
for the command-line driver.
"""

import os
import threading
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from src.graph.sorter import Sorter

# Initialize logger
logger = structlog.get_logger(__name__)

# Constants
EDGE_PAIR_LENGTH = 2
DEFAULT_CONFIG_FILES = ("graph.yaml", "graph.yml", "graph.json")


class EdgeConfig(BaseModel):
    """A single dependency edge.

    Accepts ``{"from": a, "to": b}`` mappings as well as ``[a, b]`` pairs.

    Attributes:
        from_: The dependent node
        to: The node it depends on
    """

    from_: str = Field(
        alias="from",
        description="Dependent node",
        min_length=1,
    )
    to: str = Field(
        description="Node that must come first",
        min_length=1,
    )

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "coerce_numbers_to_str": True,
    }

    @model_validator(mode="before")
    @classmethod
    def parse_pair(cls, data: object) -> object:
        """Convert ``[from, to]`` pairs into mappings.

        Args:
            data: Raw edge data

        Returns:
            Edge data as a mapping

        Raises:
            ValueError: If a list edge does not have exactly two entries
        """
        if isinstance(data, (list, tuple)):
            if len(data) != EDGE_PAIR_LENGTH:
                msg = "Edge must be a [from, to] pair"
                raise ValueError(msg)
            return {"from": data[0], "to": data[1]}
        return data


class GraphConfig(BaseModel):
    """Nodes and edges of the graph to sort.

    Attributes:
        nodes: Node names, registered first and in list order
        edges: Dependency edges, registered after the nodes in list order
    """

    nodes: list[str] = Field(
        default_factory=list,
        description="Nodes registered before any edge",
    )
    edges: list[EdgeConfig] = Field(
        default_factory=list,
        description="Dependency edges",
    )

    model_config = {"coerce_numbers_to_str": True}

    @field_validator("nodes")
    @classmethod
    def validate_nodes(cls, v: list[str]) -> list[str]:
        """Strip node names and reject blank ones.

        Args:
            v: The node names to validate

        Returns:
            The stripped node names

        Raises:
            ValueError: If a node name is blank
        """
        stripped = [name.strip() for name in v]
        if not all(stripped):
            msg = "Node names must not be blank"
            raise ValueError(msg)
        return stripped

    def to_sorter(self) -> Sorter:
        """Build a Sorter holding these nodes and edges.

        Returns:
            A Sorter ready to sort
        """
        sorter = Sorter()
        for node in self.nodes:
            sorter.add_node(node)
        for edge in self.edges:
            sorter.add_edge(edge.from_, edge.to)

        logger.debug(
            "sorter_built_from_config",
            node_count=len(sorter),
            edge_count=sorter.edge_count,
        )

        return sorter


class OutputConfig(BaseModel):
    """Output settings for the command-line driver.

    Attributes:
        format: Output format, ``text`` or ``json``
        strict: Treat cycles as a failure (non-zero exit code)
        cycle_separator: Separator placed between nodes of a rendered cycle
    """

    format: str = Field(
        default="text",
        description="Output format",
        pattern=r"^(text|json)$",
    )
    strict: bool = Field(
        default=False,
        description="Fail when the graph contains cycles",
    )
    cycle_separator: str = Field(
        default=" <= ",
        description="Separator between nodes of a rendered cycle",
        min_length=1,
    )


class ToposortConfig(BaseModel):
    """Main configuration combining the graph and output settings.

    Attributes:
        graph: Nodes and edges to sort
        output: Output settings
        logging_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    graph: GraphConfig = Field(default_factory=GraphConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging_level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ToposortConfig":
        """Load configuration from a YAML (or JSON) file.

        Args:
            path: Path to the configuration file

        Returns:
            Parsed and validated ToposortConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If configuration is empty or not valid YAML
            pydantic.ValidationError: If configuration values are invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                msg = "Configuration file is empty"
                raise ValueError(msg)

            if not isinstance(config_data, dict):
                msg = "Configuration file must contain a mapping"
                raise ValueError(msg)

            # Apply environment variable overrides
            config_data = cls._apply_env_overrides(config_data)

            # Parse and validate configuration
            config = cls(**config_data)
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e
        else:
            logger.info(
                "configuration_loaded",
                node_count=len(config.graph.nodes),
                edge_count=len(config.graph.edges),
                logging_level=config.logging_level,
            )

            return config

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: TOPOSORT_<SECTION>_<KEY>
        Example: TOPOSORT_OUTPUT_FORMAT, TOPOSORT_LOGGING_LEVEL

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            # Output configuration
            ("output", "format"): "TOPOSORT_OUTPUT_FORMAT",
            ("output", "strict"): "TOPOSORT_OUTPUT_STRICT",
            ("output", "cycle_separator"): "TOPOSORT_OUTPUT_CYCLE_SEPARATOR",
            # Logging
            ("logging_level",): "TOPOSORT_LOGGING_LEVEL",
        }

        for path, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is not None:
                # Navigate to nested config section
                current = config_data
                for key in path[:-1]:
                    if current.get(key) is None:
                        current[key] = {}
                    elif not isinstance(current[key], dict):
                        msg = f"Configuration section '{key}' must be a mapping"
                        raise ValueError(msg)
                    current = current[key]

                if env_var.endswith("_STRICT"):
                    value = value.lower() in ("true", "1", "yes")

                current[path[-1]] = value
                logger.debug(
                    "env_override_applied",
                    env_var=env_var,
                    config_path=".".join(path),
                )

        return config_data

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of validation warning messages (empty if no warnings)
        """
        warnings = []

        if not self.graph.nodes and not self.graph.edges:
            warnings.append("Graph is empty - nothing to sort")

        seen: set[str] = set()
        duplicates = []
        for node in self.graph.nodes:
            if node in seen and node not in duplicates:
                duplicates.append(node)
            seen.add(node)
        if duplicates:
            warnings.append(f"Nodes listed more than once: {', '.join(duplicates)}")

        return warnings


class ConfigManager:
    """Configuration manager using singleton pattern."""

    _instance: ToposortConfig | None = None
    _init_lock: threading.Lock = threading.Lock()

    @classmethod
    def load_config(cls, config_path: str | Path | None = None) -> ToposortConfig:
        """Load configuration from file.

        Args:
            config_path: Path to configuration file. If None, looks for graph.yaml,
                        graph.yml or graph.json in current directory.

        Returns:
            Loaded ToposortConfig instance

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config file is invalid
        """
        if config_path is None:
            for default_name in DEFAULT_CONFIG_FILES:
                default_path = Path(default_name)
                if default_path.exists():
                    config_path = default_path
                    break
            else:
                msg = "No configuration file found. Expected graph.yaml, graph.yml, or graph.json"
                raise FileNotFoundError(msg)

        return ToposortConfig.from_yaml(config_path)

    @classmethod
    def get_config(
        cls,
        config_path: str | Path | None = None,
        reload: bool = False,
    ) -> ToposortConfig:
        """Get configuration instance (singleton pattern).

        Uses double-checked locking so concurrent first calls load the file once.

        Args:
            config_path: Path to configuration file. Only used on first call or when reload=True.
            reload: If True, force reload configuration from file.

        Returns:
            ToposortConfig instance
        """
        if cls._instance is not None and not reload:
            return cls._instance

        with cls._init_lock:
            if cls._instance is None or reload:
                cls._instance = cls.load_config(config_path)

            return cls._instance

    @classmethod
    def reset_config(cls) -> None:
        """Reset the configuration instance."""
        cls._instance = None


def load_config(config_path: str | Path | None = None) -> ToposortConfig:
    """Load configuration from file."""
    return ConfigManager.load_config(config_path)


def get_config(config_path: str | Path | None = None, reload: bool = False) -> ToposortConfig:
    """Get configuration instance (singleton pattern)."""
    return ConfigManager.get_config(config_path, reload)


def reset_config() -> None:
    """Reset the configuration instance."""
    ConfigManager.reset_config()


__all__ = [
    "ConfigManager",
    "EdgeConfig",
    "GraphConfig",
    "OutputConfig",
    "ToposortConfig",
    "get_config",
    "load_config",
    "reset_config",
]
