"""Pytest configuration for the bracketeer tests."""

from helpers import patch_mockfirestore

patch_mockfirestore()
