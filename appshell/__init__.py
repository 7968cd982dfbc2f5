"""appshell: scaffold and package application shells around platform SDKs."""

__version__ = "0.3.0"
