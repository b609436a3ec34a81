"""
Socket transports for channels that cross a process boundary.
"""

from .unix_socket import UnixSocketChannel, serve_unix_channel

__all__ = ['UnixSocketChannel', 'serve_unix_channel']
