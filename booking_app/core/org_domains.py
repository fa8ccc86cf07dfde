# booking_app/core/org_domains.py
"""
Organization domain detection.

Organizations are served from `<org-slug>.<allowed hostname>`. A request
may also name the organization explicitly (the `/org/{org_slug}/...`
routes), which is used as a fallback when the host does not.
"""

import logging

from pydantic import BaseModel

from booking_app.core.config import get_settings

logger = logging.getLogger(__name__)


class OrgDomainContext(BaseModel):
    """Organization the current request is addressed to, if any."""

    current_org_domain: str | None = None
    is_valid_org_domain: bool = False


def get_org_slug(hostname: str, forced_slug: str | None = None) -> str | None:
    """
    Extract the organization slug from a request hostname.

    Returns None when the host is not a subdomain of one of the allowed
    hostnames, or when the remaining part is not a single label.
    """
    settings = get_settings()

    if forced_slug and settings.ALLOW_FORCED_ORG_SLUG:
        logger.debug("Using forced org slug %s", forced_slug)
        return forced_slug

    if "." not in hostname:
        logger.warning('Org support not enabled for hostname without "." (%s)', hostname)
        return None

    current_hostname = next(
        (allowed for allowed in settings.ALLOWED_HOSTNAMES if hostname.endswith(f".{allowed}")),
        None,
    )
    if current_hostname is None:
        logger.warning("Match of hostname %s failed (allowed: %s)", hostname, settings.ALLOWED_HOSTNAMES)
        return None

    slug = hostname[: -len(f".{current_hostname}")]
    if "." in slug:
        return None
    return slug


def org_domain_config(
    hostname: str,
    fallback_org_slug: str | None = None,
    forced_slug: str | None = None,
) -> OrgDomainContext:
    """
    Resolve the organization domain for a request.

    Reserved subdomains (www, app, api, ...) are never organizations,
    whether they come from the host or from the fallback slug.
    """
    reserved = get_settings().RESERVED_SUBDOMAINS

    current_org_domain = get_org_slug(hostname, forced_slug)
    is_valid_org_domain = current_org_domain is not None and current_org_domain not in reserved

    if is_valid_org_domain or not fallback_org_slug:
        return OrgDomainContext(
            current_org_domain=current_org_domain if is_valid_org_domain else None,
            is_valid_org_domain=is_valid_org_domain,
        )

    is_valid_fallback = fallback_org_slug not in reserved
    return OrgDomainContext(
        current_org_domain=fallback_org_slug if is_valid_fallback else None,
        is_valid_org_domain=is_valid_fallback,
    )
