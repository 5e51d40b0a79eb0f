"""
Site configurations for the supported job boards.

Each site has a SiteConfig that defines:
- Base URL used to absolutize relative job links
- Home and login pages used for login-state checks
- Search filters and whether the site runs by default
"""

from .base import SiteConfig


# ============================================================
# SITE CONFIGURATIONS
# ============================================================

SITES = {
    'naukri': SiteConfig(
        name='naukri',
        display_name='Naukri',
        base_url='https://www.naukri.com',
        home_url='https://www.naukri.com/mnjuser/homepage',
        login_url='https://www.naukri.com/nlogin/login',
        enabled=True,
    ),

    'linkedin': SiteConfig(
        name='linkedin',
        display_name='LinkedIn',
        base_url='https://www.linkedin.com',
        home_url='https://www.linkedin.com/feed/',
        login_url='https://www.linkedin.com/login',
        search_location='India',
        enabled=True,
    ),
}


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_site_config(site_key: str) -> SiteConfig:
    """
    Get configuration for a site by its key.

    Args:
        site_key: Site identifier (e.g., 'naukri', 'linkedin')

    Returns:
        SiteConfig for the site

    Raises:
        ValueError: If site_key is not found
    """
    if site_key not in SITES:
        valid_keys = ', '.join(sorted(SITES.keys()))
        raise ValueError(f"Unknown site: '{site_key}'. Valid sites: {valid_keys}")
    return SITES[site_key]


def get_enabled_sites() -> dict:
    """Get all enabled sites."""
    return {k: v for k, v in SITES.items() if v.enabled}


def list_sites() -> list:
    """List all site keys."""
    return list(SITES.keys())
