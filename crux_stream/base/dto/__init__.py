"""Wire-shape DTOs validated with pydantic."""

from .chunk import CandidateDTO, ContentDTO, PartDTO, StreamChunkDTO

__all__ = ["PartDTO", "ContentDTO", "CandidateDTO", "StreamChunkDTO"]
