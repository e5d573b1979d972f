from .s2i import app, main, load_config, describe_config

__all__ = ['app', 'main', 'load_config', 'describe_config']
