"""
dubqueue: render-job compiler and durable render queue for ffmpeg.
"""

__version__ = "0.1.0"
