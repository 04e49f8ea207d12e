"""Local TCP load balancer that switches a service port between development backends."""

__version__ = "0.1.0"