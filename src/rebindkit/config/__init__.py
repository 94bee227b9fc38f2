from .loader import RebindConfig, load_rebind_config

__all__ = ["RebindConfig", "load_rebind_config"]
