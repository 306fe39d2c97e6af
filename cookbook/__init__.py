"""Polkadot Cookbook toolkit.

Scaffolds new recipes from templates and resolves the dependency versions a
recipe is built and tested against.

Subpackages:
    cookbook.version     - versions.yml loading and global/recipe merging
    cookbook.scaffolder  - template rendering, recipe creation, npm bootstrap
"""

__version__ = "0.4.0"
