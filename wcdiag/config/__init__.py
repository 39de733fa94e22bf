# wcdiag/config/__init__.py
from .config_manager import ConfigResolver, ResolvedConfig, resolve_config, should_include
from .loaders.config_loader import ConfigLoader

__all__ = ['ConfigResolver', 'ResolvedConfig', 'resolve_config', 'should_include', 'ConfigLoader']
