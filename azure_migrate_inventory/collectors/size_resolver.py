"""Resolution of VM size labels to cores and memory"""

import threading
from typing import Dict, Optional, Tuple

from ..core.interfaces import ISizeCatalog, ISkuCatalog
from ..core.models import SizeProfile
from ..utils.logger import setup_logger

VCPUS_CAPABILITY = "vCPUs"
MEMORY_GB_CAPABILITY = "MemoryGB"


class SizeResolver:
    """Resolve cores/memory from the size catalog, falling back to the SKU catalog.

    The SKU catalog is much slower (it can take minutes per location) and is only
    consulted when the size catalog has no usable entry for the label.
    """

    def __init__(self, size_catalog: ISizeCatalog, sku_catalog: ISkuCatalog):
        self.logger = setup_logger(self.__class__.__name__)
        self.size_catalog = size_catalog
        self.sku_catalog = sku_catalog
        self._cache: Dict[Tuple[str, str], SizeProfile] = {}
        self._lock = threading.Lock()

    def resolve(self, size_name: str, location: str) -> SizeProfile:
        """Return the size profile; never raises"""

        if not size_name or not location:
            self.logger.warning(f"Cannot resolve size without name and location (size={size_name!r}, location={location!r})")
            return SizeProfile.unknown()

        cache_key = (location.lower(), size_name.lower())
        with self._lock:
            if cache_key in self._cache:
                return self._cache[cache_key]

        profile = self._resolve_uncached(size_name, location)

        with self._lock:
            self._cache[cache_key] = profile
        return profile

    def _resolve_uncached(self, size_name: str, location: str) -> SizeProfile:
        self.logger.debug(f"  Fetching VM size details for {size_name} in {location}...")

        profile = self._from_size_catalog(size_name, location)
        if profile and profile.is_complete:
            return profile

        self.logger.warning(f"  Size catalog has no entry for {size_name}. Trying SKU catalog (this may take a while)...")
        profile = self._from_sku_catalog(size_name, location)
        if profile and profile.is_complete:
            self.logger.info(f"  Cores: {profile.cores}, Memory: {profile.memory_mb}MB (from SKU catalog)")
            return profile

        self.logger.warning(f"  Could not resolve size {size_name}. Values will be empty.")
        return SizeProfile.unknown()

    def _from_size_catalog(self, size_name: str, location: str) -> Optional[SizeProfile]:
        try:
            profile = self.size_catalog.get_size(location, size_name)
        except Exception as e:
            self.logger.warning(f"  Size catalog lookup failed for {size_name} in {location}: {e}")
            return None

        if profile is None:
            return None

        return SizeProfile(
            cores=_to_int(profile.cores),
            memory_mb=_to_int(profile.memory_mb),
            source="size_catalog"
        )

    def _from_sku_catalog(self, size_name: str, location: str) -> Optional[SizeProfile]:
        try:
            capabilities = self.sku_catalog.get_capabilities(location, size_name)
        except Exception as e:
            self.logger.warning(f"  SKU catalog lookup failed for {size_name} in {location}: {e}")
            return None

        if not capabilities:
            return None

        cores = _to_int(capabilities.get(VCPUS_CAPABILITY))
        memory_mb = None
        memory_gb = _to_float(capabilities.get(MEMORY_GB_CAPABILITY))
        if memory_gb is not None:
            memory_mb = int(memory_gb * 1024)

        return SizeProfile(cores=cores, memory_mb=memory_mb, source="sku_catalog")


def _to_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result or result < 0:  # NaN or negative
        return None
    return result
