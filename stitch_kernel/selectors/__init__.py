"""Read-only selectors."""

from stitch_kernel.selectors.production_selector import ProductionSelector
from stitch_kernel.selectors.progress_selector import ProgressSelector
from stitch_kernel.selectors.vendor_selector import VendorProgressSelector

__all__ = ["ProductionSelector", "ProgressSelector", "VendorProgressSelector"]
