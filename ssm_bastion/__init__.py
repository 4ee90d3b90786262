"""Find an EC2 bastion by tags and open an SSM port-forward or shell session through it."""

__version__ = "0.1.0"
