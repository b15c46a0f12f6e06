from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

import yaml

from zk.verifier import MAX_PROOF_SIZE

logger = logging.getLogger(__name__)


@dataclass
class VerifierConfig:
    backend: str = "structural"
    max_proof_size: int = MAX_PROOF_SIZE
    strict_public_inputs: bool = False

    def __post_init__(self):
        # May tighten the proof size limit but never lift it
        if not 0 < self.max_proof_size <= MAX_PROOF_SIZE:
            raise ValueError(
                f"max_proof_size must be in 1..{MAX_PROOF_SIZE}, got {self.max_proof_size}")


@dataclass
class PollSystemConfig:
    verifier: VerifierConfig = field(default_factory=VerifierConfig)
    verification_key_file: Optional[Path] = None
    initial_block_height: int = 0

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    log_level: str = "INFO"
    enable_benchmarking: bool = True

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)
        if self.verification_key_file is not None:
            self.verification_key_file = Path(self.verification_key_file)

    def load_verification_key(self) -> Optional[bytes]:
        """Read the configured key file, if any"""
        if self.verification_key_file is None:
            return None
        return self.verification_key_file.read_bytes()


def load_config(config_path: Optional[Path] = None) -> PollSystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            verifier_data = config_data.get('verifier', {})
            verifier = VerifierConfig(
                backend=verifier_data.get('backend', 'structural'),
                max_proof_size=verifier_data.get('max_proof_size', MAX_PROOF_SIZE),
                strict_public_inputs=verifier_data.get(
                    'strict_public_inputs', False)
            )

            return PollSystemConfig(
                verifier=verifier,
                verification_key_file=config_data.get('verification_key_file'),
                initial_block_height=config_data.get('initial_block_height', 0),
                log_dir=Path(config_data.get('log_dir', 'logs')),
                results_dir=Path(config_data.get('results_dir', 'results')),
                log_level=config_data.get('log_level', 'INFO'),
                enable_benchmarking=config_data.get(
                    'enable_benchmarking', True)
            )
        except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return PollSystemConfig()


def save_config(config: PollSystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")

    config_data = {
        'verifier': {
            'backend': config.verifier.backend,
            'max_proof_size': config.verifier.max_proof_size,
            'strict_public_inputs': config.verifier.strict_public_inputs
        },
        'verification_key_file': (str(config.verification_key_file)
                                  if config.verification_key_file else None),
        'initial_block_height': config.initial_block_height,
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'log_level': config.log_level,
        'enable_benchmarking': config.enable_benchmarking
    }

    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False)
