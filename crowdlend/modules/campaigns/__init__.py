# Campaigns module
from crowdlend.modules.campaigns.models import Campaign, CampaignStatus, CampaignCategory

__all__ = ["Campaign", "CampaignStatus", "CampaignCategory"]
