"""Models package."""

from .business_category import BusinessCategory
from .template import Template
from .video_template import VideoTemplate
from .greeting_template import GreetingTemplate
from .business_category_image import BusinessCategoryImage
from .engagement_record import EngagementRecord
from .download_event import DownloadEvent
from .subscription import Subscription
