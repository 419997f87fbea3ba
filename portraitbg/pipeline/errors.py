"""
Exception taxonomy for the background replacement pipeline
"""


class PipelineError(Exception):
    """Base exception for background replacement errors"""

    pass


class InvalidInputError(PipelineError):
    """Raised when a pixel buffer or color fails validation"""

    pass


class UnsupportedFormatError(PipelineError):
    """Raised when input cannot be decoded into a pixel buffer"""

    pass


class ConfigError(PipelineError):
    """Raised when a configuration value is out of range"""

    pass
