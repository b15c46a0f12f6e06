"""Configuration management for the polling system."""

from .config import PollSystemConfig, VerifierConfig, load_config, save_config

__all__ = ['PollSystemConfig', 'VerifierConfig', 'load_config', 'save_config']
