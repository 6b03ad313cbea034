"""Shared FastMCP sub-server instance for video tools.

media.py and analysis.py both register on this instance, so the server
mounts a single ``video`` sub-server.
"""

from fastmcp import FastMCP

video_server = FastMCP("video")
