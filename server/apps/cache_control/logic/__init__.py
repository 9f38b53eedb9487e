"""Business logic for Cache-Control synchronization.

- ``policy``: which Cache-Control directive a file should carry
- ``keys``: where a file lives inside its bucket
- ``reconciler``: comparing and patching remote object metadata
"""
