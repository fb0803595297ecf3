from .vanguardscraper_api import (
    Investment as Investment,
)
from .vanguardscraper_api import (
    create_app as create_app,
)
