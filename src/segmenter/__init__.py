"""
Video Segmenter - AI-assisted chapter and highlight clipping.

A pipeline for:
- Analyzing a video with Gemini to find chapters, controversial and viral parts
- Normalizing the returned time ranges into ordered segment jobs
- Cutting one clip per segment with ffmpeg, skipping segments that fail
- Stitching a hand-picked subset of chapter clips into one video
"""

__version__ = "0.1.0"
