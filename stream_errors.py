# stream_errors.py

class VideoStreamError(Exception):
    """Base class for every failure while setting up or running a transfer"""
    pass

class StreamConnectionError(VideoStreamError, ConnectionError):
    """Raised when the request cannot be sent or the server is unreachable"""
    pass

class BadStatusError(StreamConnectionError):
    """Raised when the server answers with an HTTP error status"""

    def __init__(self, status_code, url):
        super().__init__(f"HTTP {status_code} when requesting {url}")
        self.status_code = status_code
        self.url = url

class MissingContentLengthError(VideoStreamError, ValueError):
    """Raised when the response has no usable Content-Length header"""
    pass

class FileCreateError(VideoStreamError, OSError):
    pass

class NetworkReadError(VideoStreamError, IOError):
    pass

class FileWriteError(VideoStreamError, OSError):
    pass
