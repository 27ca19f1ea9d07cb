"""Normalisation applied to documentation before it is served."""

import re

_BLANK_RUNS = re.compile(r"\n{3,}")
_HTML_COMMENTS = re.compile(r"<!--.*?-->", re.DOTALL)
_BOILERPLATE_HEADINGS = re.compile(
    r"^#+\s*(navigation|metadata|table of contents)\b.*\n?",
    re.IGNORECASE,
)


def translate_authconfig(content: str) -> str:
    """Rewrite standalone Authorino ``AuthConfig`` terms as Kuadrant ``AuthPolicy``."""
    content = content.replace("AuthConfig", "AuthPolicy")
    content = content.replace("authconfigs", "authpolicies")
    content = content.replace("authconfig", "authpolicy")
    # "AuthConfigConfig"-style names collapse into a doubled suffix
    return content.replace("AuthPolicyConfig", "AuthPolicy")


def extract_key_content(content: str, translate: bool = False) -> str:
    """Strip comments and boilerplate headings from a markdown document.

    Already-clean text comes back unchanged, so bundled fallback content
    can go through the same path as fetched content.
    """
    content = _HTML_COMMENTS.sub("", content)
    content = _BOILERPLATE_HEADINGS.sub("", content)
    content = _BLANK_RUNS.sub("\n\n", content)
    if translate:
        content = translate_authconfig(content)
    return content
