"""Core building blocks shared by every module."""
