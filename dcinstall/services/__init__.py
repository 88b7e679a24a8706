"""Installer stages."""
