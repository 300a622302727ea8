"""sshstate - idempotent SSH key and client config management for remote hosts."""

__version__ = '0.1.0'
