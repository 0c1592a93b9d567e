from .pipeline import RenderPipeline

__all__ = ["RenderPipeline"]
