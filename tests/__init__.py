"""Test package for the attention task suite.

Core modules are tested directly with a fake clock; the pygame shell is
exercised headlessly through SDL's dummy video driver. Run ``pytest`` from the
project root.
"""
