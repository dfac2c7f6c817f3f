# csv_processor/config.py
import os
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass
import json

logger = logging.getLogger(__name__)

@dataclass
class PathConfig:
    """Configuration for project paths"""
    LOGS_DIR: Path

@dataclass
class ValidationLimits:
    """Limits enforced on raw CSV payloads before parsing"""
    MAX_PAYLOAD_MB: float  # server-side ceiling, the trust boundary
    CLIENT_MAX_FILE_SIZE_MB: float  # what upload forms advertise
    MAX_COLUMNS: int
    MAX_ROWS: int

@dataclass
class AnalysisConfig:
    """Configuration for the analysis operations"""
    REPORT_OUTLIER_THRESHOLD: float
    SAMPLE_VALUES_LIMIT: int
    OUTLIER_PREVIEW_LIMIT: int
    DEFAULT_DOWNLOAD_FORMAT: str

@dataclass
class RateLimitConfig:
    """Per-caller request limits for the HTTP adapter"""
    ENABLED: bool
    MAX_REQUESTS: int
    WINDOW_SECONDS: float

@dataclass
class DeploymentConfig:
    """Configuration for the API server"""
    DEFAULT_PORT: int
    DEFAULT_HOST: str
    WORKERS: int
    ENABLE_CORS: bool
    ENABLE_DOCS: bool
    TRUST_PROXY_HEADERS: bool  # honor X-Forwarded-For only behind a trusted proxy

class Config:
    """Central configuration manager for the CSV processor"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Optional path to JSON config file to override defaults
        """
        self._load_default_config()

        if config_file and os.path.exists(config_file):
            self._load_config_file(config_file)

        self._load_environment_variables()

    def _load_default_config(self):
        """Load default configuration values"""

        project_root = Path(__file__).parent.parent
        self.paths = PathConfig(
            LOGS_DIR=project_root / "logs"
        )

        self.validation = ValidationLimits(
            MAX_PAYLOAD_MB=15,
            CLIENT_MAX_FILE_SIZE_MB=10,
            MAX_COLUMNS=1000,
            MAX_ROWS=200000
        )

        self.analysis = AnalysisConfig(
            REPORT_OUTLIER_THRESHOLD=3.0,
            SAMPLE_VALUES_LIMIT=5,
            OUTLIER_PREVIEW_LIMIT=5,
            DEFAULT_DOWNLOAD_FORMAT="csv"
        )

        self.rate_limit = RateLimitConfig(
            ENABLED=True,
            MAX_REQUESTS=50,
            WINDOW_SECONDS=60.0
        )

        self.deployment = DeploymentConfig(
            DEFAULT_PORT=8000,
            DEFAULT_HOST="0.0.0.0",
            WORKERS=1,
            ENABLE_CORS=True,
            ENABLE_DOCS=True,
            TRUST_PROXY_HEADERS=False
        )

        # Additional settings
        self.logging_level = "INFO"
        self.log_to_file = False

    def _load_config_file(self, config_file: str):
        """Load configuration from JSON file"""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")
            return

        # Update configurations with values from file
        for section, values in config_data.items():
            if not hasattr(self, section):
                continue
            config_obj = getattr(self, section)
            if isinstance(values, dict):
                for key, value in values.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)
            elif not hasattr(config_obj, '__dict__'):
                setattr(self, section, values)

    def _load_environment_variables(self):
        """Load configuration from environment variables"""

        # Validation limits
        if os.getenv("CSV_MAX_PAYLOAD_MB"):
            self.validation.MAX_PAYLOAD_MB = float(os.getenv("CSV_MAX_PAYLOAD_MB"))

        if os.getenv("CSV_MAX_ROWS"):
            self.validation.MAX_ROWS = int(os.getenv("CSV_MAX_ROWS"))

        if os.getenv("CSV_MAX_COLUMNS"):
            self.validation.MAX_COLUMNS = int(os.getenv("CSV_MAX_COLUMNS"))

        # Analysis settings
        if os.getenv("CSV_REPORT_OUTLIER_THRESHOLD"):
            self.analysis.REPORT_OUTLIER_THRESHOLD = float(os.getenv("CSV_REPORT_OUTLIER_THRESHOLD"))

        # Rate limiting
        if os.getenv("RATE_LIMIT_ENABLED"):
            self.rate_limit.ENABLED = os.getenv("RATE_LIMIT_ENABLED").lower() == 'true'

        if os.getenv("RATE_LIMIT_MAX_REQUESTS"):
            self.rate_limit.MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS"))

        if os.getenv("RATE_LIMIT_WINDOW_SECONDS"):
            self.rate_limit.WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS"))

        # Deployment settings
        if os.getenv("API_PORT"):
            self.deployment.DEFAULT_PORT = int(os.getenv("API_PORT"))

        if os.getenv("API_HOST"):
            self.deployment.DEFAULT_HOST = os.getenv("API_HOST")

        if os.getenv("TRUST_PROXY_HEADERS"):
            self.deployment.TRUST_PROXY_HEADERS = os.getenv("TRUST_PROXY_HEADERS").lower() == 'true'

        # General settings
        if os.getenv("LOG_LEVEL"):
            self.logging_level = os.getenv("LOG_LEVEL")

        if os.getenv("LOG_TO_FILE"):
            self.log_to_file = os.getenv("LOG_TO_FILE").lower() == 'true'

        if os.getenv("LOG_DIR"):
            self.paths.LOGS_DIR = Path(os.getenv("LOG_DIR"))

    def save_config(self, config_file: str):
        """Save current configuration to JSON file"""
        config_dict = {}

        # Convert dataclasses to dictionaries
        for attr_name in dir(self):
            if not attr_name.startswith('_'):
                attr_value = getattr(self, attr_name)
                if hasattr(attr_value, '__dict__'):
                    config_dict[attr_name] = {}
                    for field_name, field_value in attr_value.__dict__.items():
                        if isinstance(field_value, Path):
                            config_dict[attr_name][field_name] = str(field_value)
                        else:
                            config_dict[attr_name][field_name] = field_value
                elif not callable(attr_value):
                    config_dict[attr_name] = attr_value

        with open(config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        limits = self.validation
        if limits.MAX_PAYLOAD_MB <= 0:
            issues.append(f"Invalid max payload size: {limits.MAX_PAYLOAD_MB}")

        if limits.MAX_PAYLOAD_MB <= limits.CLIENT_MAX_FILE_SIZE_MB:
            issues.append(
                f"Server payload ceiling ({limits.MAX_PAYLOAD_MB}MB) must exceed "
                f"client ceiling ({limits.CLIENT_MAX_FILE_SIZE_MB}MB)"
            )

        if limits.MAX_COLUMNS <= 0:
            issues.append(f"Invalid max columns: {limits.MAX_COLUMNS}")

        if limits.MAX_ROWS <= 0:
            issues.append(f"Invalid max rows: {limits.MAX_ROWS}")

        if self.analysis.REPORT_OUTLIER_THRESHOLD <= 0:
            issues.append(f"Invalid report outlier threshold: {self.analysis.REPORT_OUTLIER_THRESHOLD}")

        if self.analysis.DEFAULT_DOWNLOAD_FORMAT not in ('csv', 'excel'):
            issues.append(f"Invalid default download format: {self.analysis.DEFAULT_DOWNLOAD_FORMAT}")

        if self.rate_limit.MAX_REQUESTS <= 0 or self.rate_limit.WINDOW_SECONDS <= 0:
            issues.append("Rate limit requires positive MAX_REQUESTS and WINDOW_SECONDS")

        return issues

    def __str__(self) -> str:
        """String representation of configuration"""
        return (
            f"Config(max_payload_mb={self.validation.MAX_PAYLOAD_MB}, "
            f"max_rows={self.validation.MAX_ROWS}, log_level={self.logging_level})"
        )

# Global configuration instance
_config = None

def get_config(config_file: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config

def reload_config(config_file: Optional[str] = None) -> Config:
    """Reload configuration (useful for testing)"""
    global _config
    _config = Config(config_file)
    return _config

# Example configuration file template
CONFIG_TEMPLATE: Dict[str, Any] = {
    "validation": {
        "MAX_PAYLOAD_MB": 15,
        "MAX_COLUMNS": 1000,
        "MAX_ROWS": 200000
    },
    "analysis": {
        "REPORT_OUTLIER_THRESHOLD": 3.0,
        "SAMPLE_VALUES_LIMIT": 5
    },
    "rate_limit": {
        "MAX_REQUESTS": 50,
        "WINDOW_SECONDS": 60
    },
    "deployment": {
        "DEFAULT_PORT": 8080
    }
}

def create_config_template(output_file: str):
    """Create a configuration template file"""
    with open(output_file, 'w') as f:
        json.dump(CONFIG_TEMPLATE, f, indent=2)
    logger.info(f"Configuration template created: {output_file}")
