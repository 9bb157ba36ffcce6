"""CrowdLend: crowdfunding and peer-to-peer lending backend."""

__version__ = "1.0.0"
