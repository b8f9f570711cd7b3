from .bashmini import MinifyConfig, minify

__all__ = ['MinifyConfig', 'minify']
