from .video import VideoMetadata, embed_url, extract_video_id, fetch_video_metadata

__all__ = ["VideoMetadata", "embed_url", "extract_video_id", "fetch_video_metadata"]
