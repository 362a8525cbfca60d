"""Tests for VM size resolution"""

from azure_migrate_inventory.collectors.size_resolver import SizeResolver
from azure_migrate_inventory.core.models import SizeProfile

from fakes import FakeSizeCatalog, FakeSkuCatalog


class TestSizeResolver:

    def test_size_catalog_hit_skips_sku_catalog(self):
        sizes = FakeSizeCatalog({"Standard_D4s_v3": SizeProfile(cores=4, memory_mb=16384)})
        skus = FakeSkuCatalog()

        profile = SizeResolver(sizes, skus).resolve("Standard_D4s_v3", "westeurope")

        assert (profile.cores, profile.memory_mb) == (4, 16384)
        assert profile.source == "size_catalog"
        assert skus.calls == 0

    def test_sku_fallback_converts_memory_gb(self):
        skus = FakeSkuCatalog({"Standard_E2bs_v5": {"vCPUs": "2", "MemoryGB": "8"}})

        profile = SizeResolver(FakeSizeCatalog(), skus).resolve("Standard_E2bs_v5", "westeurope")

        assert profile.cores == 2
        assert profile.memory_mb == 8192
        assert profile.source == "sku_catalog"

    def test_fractional_memory_gb_is_truncated(self):
        skus = FakeSkuCatalog({"Standard_B1ls": {"vCPUs": "1", "MemoryGB": "0.5"}})

        profile = SizeResolver(FakeSizeCatalog(), skus).resolve("Standard_B1ls", "westeurope")

        assert profile.memory_mb == 512

    def test_incomplete_size_catalog_entry_falls_back(self):
        sizes = FakeSizeCatalog({"Standard_X": SizeProfile(cores=4, memory_mb=None)})
        skus = FakeSkuCatalog({"Standard_X": {"vCPUs": "4", "MemoryGB": "32"}})

        profile = SizeResolver(sizes, skus).resolve("Standard_X", "westeurope")

        assert profile.memory_mb == 32768
        assert skus.calls == 1

    def test_both_catalogs_failing_yields_unknown(self):
        resolver = SizeResolver(
            FakeSizeCatalog(error=RuntimeError("throttled")),
            FakeSkuCatalog(error=TimeoutError("timed out"))
        )

        profile = resolver.resolve("Standard_D4s_v3", "westeurope")

        assert profile.cores is None
        assert profile.memory_mb is None

    def test_unparseable_capabilities_yield_unknown(self):
        skus = FakeSkuCatalog({"Standard_X": {"vCPUs": "many", "MemoryGB": "NaN"}})

        profile = SizeResolver(FakeSizeCatalog(), skus).resolve("Standard_X", "westeurope")

        assert not profile.is_complete

    def test_missing_size_or_location_does_not_query(self):
        sizes = FakeSizeCatalog()
        resolver = SizeResolver(sizes, FakeSkuCatalog())

        assert resolver.resolve("", "westeurope") == SizeProfile.unknown()
        assert resolver.resolve("Standard_D2s_v3", "") == SizeProfile.unknown()
        assert sizes.calls == 0

    def test_results_are_cached_per_location_and_size(self):
        sizes = FakeSizeCatalog({"Standard_D2s_v3": SizeProfile(cores=2, memory_mb=8192)})
        resolver = SizeResolver(sizes, FakeSkuCatalog())

        resolver.resolve("Standard_D2s_v3", "westeurope")
        resolver.resolve("standard_d2s_v3", "WestEurope")
        resolver.resolve("Standard_D2s_v3", "northeurope")

        assert sizes.calls == 2
