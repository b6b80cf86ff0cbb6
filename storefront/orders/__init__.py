from .pipeline import OrderPipeline, ORPHAN_POLICIES
from .totals import checkout_totals, commission_base

__all__ = ['OrderPipeline', 'ORPHAN_POLICIES', 'checkout_totals', 'commission_base']
