"""
Package: config
Description: Harness configuration loaded from the environment.
"""
