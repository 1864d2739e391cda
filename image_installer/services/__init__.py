"""Installer stages that talk to external collaborators."""
