# Donations module
from crowdlend.modules.donations.models import Donation

__all__ = ["Donation"]
