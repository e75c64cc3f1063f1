"""Brand configuration for white-labeled research reports."""
from __future__ import annotations

from pydantic import BaseModel


class BrandConfig(BaseModel):
    """Firm identity printed in report headers and footers."""
    brand_id: str
    firm_name: str
    tagline: str = ""
    copyright_text: str = ""
    site_url: str = ""
    logo_url: str | None = None
    primary_color: str = "#1e3a5f"
    accent_color: str = "#4a5568"
    font_family: str = "'Helvetica Neue', Arial, sans-serif"

    @property
    def footer_copyright(self) -> str:
        return self.copyright_text or f"© {self.firm_name}"
