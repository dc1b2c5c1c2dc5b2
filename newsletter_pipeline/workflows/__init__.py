"""Pipeline composition."""

from .send_pipeline import SendPipeline, create_send_pipeline

__all__ = ["SendPipeline", "create_send_pipeline"]
