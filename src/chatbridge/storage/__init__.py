"""Filesystem locations used by chatbridge."""
