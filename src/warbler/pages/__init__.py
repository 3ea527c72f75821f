"""Server-side page rendering.

Resolve a path to a ``RenderDescriptor``, render its view, and wrap the
markup in the document shell with the scripts the page needs.
"""

from warbler.pages.context import Fetcher, RenderContext, is_mobile_agent
from warbler.pages.descriptor import RenderDescriptor
from warbler.pages.document import DocumentAssembler, render_document
from warbler.pages.manifest import Asset, AssetManifest
from warbler.pages.pipeline import PagePipeline
from warbler.pages.renderer import Rendered, render
from warbler.pages.resolver import PageRouter, Resolver
from warbler.pages.styles import StyleSet
from warbler.pages.views import ErrorView, HtmlView, Placeholder, Styled, TemplateView, View

__all__ = [
    "Asset",
    "AssetManifest",
    "DocumentAssembler",
    "ErrorView",
    "Fetcher",
    "HtmlView",
    "PagePipeline",
    "PageRouter",
    "Placeholder",
    "RenderContext",
    "RenderDescriptor",
    "Rendered",
    "Resolver",
    "StyleSet",
    "Styled",
    "TemplateView",
    "View",
    "is_mobile_agent",
    "render",
    "render_document",
]
