from marketplace.services.quality.recommendations import quality_recommendations
from marketplace.services.quality.reports import quality_reports
from marketplace.services.quality.scoring import quality_scoring

__all__ = ["quality_recommendations", "quality_reports", "quality_scoring"]
