"""
Custom exceptions for the RouteSmith engine
"""


class RouteSmithError(Exception):
    """Base exception for the RouteSmith engine"""
    pass


class InvalidCoordinatesError(RouteSmithError):
    """Raised when coordinates are invalid or out of bounds"""
    pass


class CollaboratorError(RouteSmithError):
    """Raised when an external provider call fails or returns nothing usable"""
    pass


class RouteGenerationCancelled(RouteSmithError):
    """Raised when a route generation request is cancelled by the caller"""
    pass
