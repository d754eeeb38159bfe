import uuid
from typing import override

from site_rebuilder.domain.content_rebuild import (
    ColorScheme,
    PageTemplate,
    TemplateType,
    Typography,
)
from site_rebuilder.domain.repositories import PageTemplateRepository


def template_id_for(template_type: TemplateType) -> uuid.UUID:
    """기본 템플릿은 타입으로부터 항상 같은 id를 갖습니다."""
    return uuid.uuid5(uuid.NAMESPACE_URL, f"site-rebuilder:template:{template_type.value}")


def default_templates() -> list[PageTemplate]:
    return [
        PageTemplate(
            id=template_id_for(TemplateType.RESTAURANT_CLASSIC),
            name="Restaurant Classic",
            template_type=TemplateType.RESTAURANT_CLASSIC,
            description="Traditional restaurant layout with hero section, menu grid, and gallery",
            hero_layout="full-width",
            menu_layout="grid",
            gallery_layout="masonry",
            color_scheme=ColorScheme(
                primary="#1a1a1a",
                secondary="#f5f5f5",
                accent="#d4af37",
                background="#ffffff",
                text="#333333",
            ),
            typography=Typography(heading_font="Playfair Display", body_font="Inter"),
        ),
        PageTemplate(
            id=template_id_for(TemplateType.RESTAURANT_MODERN),
            name="Restaurant Modern",
            template_type=TemplateType.RESTAURANT_MODERN,
            description="Contemporary design with bold typography and minimalist layout",
            hero_layout="split-screen",
            menu_layout="list",
            gallery_layout="grid",
            color_scheme=ColorScheme(
                primary="#0a0a0a",
                secondary="#f9f9f9",
                accent="#ff6b35",
                background="#ffffff",
                text="#2d2d2d",
            ),
            typography=Typography(heading_font="Poppins", body_font="Open Sans"),
        ),
    ]


class InMemoryPageTemplateRepository(PageTemplateRepository):
    def __init__(self, templates: list[PageTemplate] | None = None) -> None:
        seed = default_templates() if templates is None else templates
        self._templates: dict[uuid.UUID, PageTemplate] = {t.id: t for t in seed}

    @override
    async def get(self, template_id: uuid.UUID) -> PageTemplate | None:
        return self._templates.get(template_id)

    @override
    async def get_by_type(self, template_type: TemplateType) -> PageTemplate | None:
        return next(
            (
                t
                for t in self._templates.values()
                if t.template_type == template_type and t.is_active
            ),
            None,
        )

    @override
    async def list_active(self) -> list[PageTemplate]:
        return [t for t in self._templates.values() if t.is_active]
