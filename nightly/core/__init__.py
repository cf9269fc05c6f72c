"""Core domain types: results, exit codes, config and project detection."""

from .config import Config, ConfigError, TargetConfig, TargetKind, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result
from .workspace import Project, ProjectError, detect_project

__all__ = [
    # config
    "Config",
    "ConfigError",
    "TargetConfig",
    "TargetKind",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    # workspace
    "Project",
    "ProjectError",
    "detect_project",
]
