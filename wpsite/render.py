"""
Template rendering for generated config files.

Templates live in wpsite/templates and are rendered with Jinja2. Undefined
variables are errors, so a missing value can never produce a half-filled
Apache config.
"""

from functools import lru_cache

from jinja2 import Environment, PackageLoader, StrictUndefined

VHOST_TEMPLATE = "vhost.conf.j2"
HTACCESS_TEMPLATE = "htaccess.j2"
WP_EXTRA_PHP_TEMPLATE = "wp-config-extra.php.j2"


@lru_cache(maxsize=1)
def _environment() -> Environment:
    # Config files, not HTML: no autoescaping
    return Environment(
        loader=PackageLoader("wpsite", "templates"),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def render(template_name: str, **context) -> str:
    """
    Render a bundled template.

    Example:
        render("vhost.conf.j2", site_id="demo", server_name="demo.localhost",
               document_root="/var/www/html/demo", log_dir="/var/log/apache2")
    """
    return _environment().get_template(template_name).render(**context)


def render_vhost(site_id: str, server_name: str, document_root: str, log_dir: str) -> str:
    return render(
        VHOST_TEMPLATE,
        site_id=site_id,
        server_name=server_name,
        document_root=document_root,
        log_dir=log_dir,
    )


def render_htaccess() -> str:
    return render(HTACCESS_TEMPLATE)


def render_wp_extra_php(debug: bool = False) -> str:
    return render(WP_EXTRA_PHP_TEMPLATE, debug=debug)
