"""
Static data for provisioning: patch anchors and file templates.

Usage::

    from apiforge.core.data import anchors, templates

    anchors.ENV_REDIS_CACHE        # [(search, replace), ...]
    templates.GIT_HOOKS            # {"pre-commit": "#!/bin/sh ...", ...}
"""

from apiforge.core.data import anchors, templates

__all__ = ["anchors", "templates"]
