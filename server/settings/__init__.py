"""Main settings file.

Settings are split into components and environments.
``DJANGO_ENV`` selects the environment file, ``development`` by default.
"""

from os import environ

import django_stubs_ext
from split_settings.tools import include, optional

# Monkeypatching Django, so stubs will work for all generics,
# see: https://github.com/typeddjango/django-stubs/tree/master/ext
django_stubs_ext.monkeypatch()

_ENV = environ.setdefault('DJANGO_ENV', 'development')

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/cache_control.py',
    # Select the right env:
    f'environments/{_ENV}.py',
    # Optionally override some settings:
    optional('environments/local.py'),
)

# Include settings:
include(*_base_settings)
