"""
jet - Just Edit Text.

Find and replace regular expressions in files, file names, and stdin.
"""
from .transform import Transform, TransformChain
from .config import ConfigError, TraversalConfig
from .walker import Walker

__version__ = '0.1.0'

__all__ = ['Transform', 'TransformChain', 'ConfigError', 'TraversalConfig',
           'Walker']
