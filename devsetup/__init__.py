"""
devsetup - development environment bootstrap for Viper-based Rust verifiers.

Installs native dependencies, fetches the Viper tools archive and configures
the Rust toolchain pinned by the project.
"""

__version__ = "0.1.0"
