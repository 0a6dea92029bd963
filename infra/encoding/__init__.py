from .ffmpeg_encoder import FfmpegWebpEncoder

__all__ = ["FfmpegWebpEncoder"]
