"""
Fingerspell Client - Real-time fingerspelling to word recognition.

This package runs on a client machine, detects hand landmarks locally
with MediaPipe, sends normalized landmark features to a remote sign
classifier over HTTP, and combines accepted signs into two-character
words through a lookup table.
"""

__version__ = "1.0.0"
