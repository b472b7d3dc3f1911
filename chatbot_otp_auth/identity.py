"""Email identity normalization used to key OTP records."""

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class EmailAliasRule:
    """
    Provider-specific aliasing rule for a family of mail domains.

    Attributes:
        domains: Domains the rule applies to (lowercase)
        canonical_domain: Domain every member of the family is rewritten to
        strip_dots: Whether dots in the local part are ignored by the provider
        subaddress_separator: Character that starts a subaddress ("+", "-")
    """

    domains: frozenset[str] = field(default_factory=frozenset)
    canonical_domain: str | None = None
    strip_dots: bool = False
    subaddress_separator: str | None = None

    def apply(self, local: str, domain: str) -> str:
        """Return the normalized address for a local part on a member domain."""
        if self.subaddress_separator and self.subaddress_separator in local:
            local = local.split(self.subaddress_separator, 1)[0]
        if self.strip_dots:
            local = local.replace(".", "")
        return f"{local}@{self.canonical_domain or domain}"


DEFAULT_ALIAS_RULES: tuple[EmailAliasRule, ...] = (
    EmailAliasRule(
        domains=frozenset({"gmail.com", "googlemail.com"}),
        canonical_domain="gmail.com",
        strip_dots=True,
        subaddress_separator="+",
    ),
    EmailAliasRule(
        domains=frozenset({"outlook.com", "hotmail.com", "live.com"}),
        subaddress_separator="+",
    ),
    EmailAliasRule(
        domains=frozenset({"yahoo.com", "ymail.com", "rocketmail.com"}),
        subaddress_separator="-",
    ),
    EmailAliasRule(
        domains=frozenset({"icloud.com", "me.com", "mac.com"}),
        subaddress_separator="+",
    ),
)


class IdentityNormalizer:
    """
    Derive the string forms of an email address used as OTP keys.

    Providers deliver several literal addresses to one mailbox, so a code
    generated for ``a.b@gmail.com`` must be found again when the user types
    ``ab@gmail.com``. The provider behaviour lives in a rule table rather than
    in code so new quirks can be added through configuration.

    Example:
        >>> normalizer = IdentityNormalizer()
        >>> normalizer.candidates("  A.B+news@GoogleMail.com ")
        ['a.b+news@googlemail.com', 'ab@gmail.com']
    """

    def __init__(self, rules: Iterable[EmailAliasRule] = DEFAULT_ALIAS_RULES) -> None:
        self._rules: dict[str, EmailAliasRule] = {}
        for rule in rules:
            for domain in rule.domains:
                self._rules[domain.lower()] = rule

    def candidates(self, raw: str | None) -> list[str]:
        """
        Return the candidate forms of an address, canonical form last.

        Never empty: malformed input yields its lowercased, trimmed form.
        """
        lower = str(raw or "").strip().lower()
        normalized = self.normalize(lower) or lower
        return list(dict.fromkeys([lower, normalized]))

    def canonical(self, raw: str | None) -> str:
        """Return the form used for writes."""
        return self.candidates(raw)[-1]

    def normalize(self, address: str) -> str | None:
        """
        Apply the provider rule for an already lowercased address.

        Returns None when the address is malformed or its domain has no rule.
        """
        local, sep, domain = address.rpartition("@")
        if not sep or not local or not domain:
            return None

        rule = self._rules.get(domain)
        if rule is None:
            return None

        normalized = rule.apply(local, domain)
        # A local part made only of dots or a bare subaddress collapses to nothing
        if normalized.startswith("@"):
            return None
        return normalized


def mask_email(address: str) -> str:
    """Mask an address for log output, e.g. ``j***@example.com``."""
    local, sep, domain = address.rpartition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"
