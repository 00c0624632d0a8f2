VERSION = (1, 0, 0)
__version__ = ".".join(map(str, VERSION))


def get_ring(alias="default"):
    """
    Helper used for building a hash ring from ``settings.HASH_ORBIT_RINGS``.

    A new ring is returned on every call.
    """

    from django.conf import settings
    from django.core.exceptions import ImproperlyConfigured

    from hash_orbit.util import make_ring

    rings = getattr(settings, "HASH_ORBIT_RINGS", {})
    try:
        params = rings[alias]
    except KeyError as e:
        error_message = f"Could not find config for '{alias}' in HASH_ORBIT_RINGS"
        raise ImproperlyConfigured(error_message) from e

    return make_ring(params.get("NODES", []), params.get("OPTIONS", {}))
