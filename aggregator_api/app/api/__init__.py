"""
API package containing the service groups.

The version segment of the URI is configurable, so routes are not
split into per-version subpackages; ``services`` registers every group
under the prefix it is given.
"""
