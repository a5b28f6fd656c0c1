from .bootstrap import build_delivery_profiles, build_runtime

__all__ = ["build_delivery_profiles", "build_runtime"]
