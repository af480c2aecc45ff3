"""Reusable DNS query payloads."""

import secrets

import dns.flags
import dns.message
import dns.rdatatype

MAX_QUERY_ID = 65536


def random_query_id() -> int:
    """Draw a transaction id uniformly from [0, 65535]."""
    return secrets.randbelow(MAX_QUERY_ID)


class QueryTemplate:
    """An A query for one domain, serialized once and resent many times.

    Only the transaction id changes over the template's lifetime, and only
    when random ids are requested, so that resolvers do not drop the
    queries as duplicates.
    """

    query_type = 'A'

    def __init__(self, domain: str, iterative: bool = False, random_ids: bool = False):
        self.domain = domain
        self.random_ids = random_ids
        self.message = dns.message.make_query(domain, dns.rdatatype.A)
        if iterative:
            # Authoritative servers do not expect recursion
            self.message.flags &= ~dns.flags.RD
        self._wire = self.message.to_wire()

    @property
    def recursion_desired(self) -> bool:
        return bool(self.message.flags & dns.flags.RD)

    @property
    def query_id(self) -> int:
        return self.message.id

    def randomize_id(self):
        self.message.id = random_query_id()
        self._wire = self.message.to_wire()

    def to_wire(self) -> bytes:
        """Return the payload for the next transmission."""
        if self.random_ids:
            self.randomize_id()
        return self._wire

    def matches(self, data: bytes) -> bool:
        """Tell whether a datagram is a reply to the current query.

        Raises:
            dns.exception.DNSException: If the datagram is not a DNS message.
        """
        response = dns.message.from_wire(data)
        return self.message.is_response(response)

    def __repr__(self):
        return f'QueryTemplate({self.domain!r}, {self.query_type}, rd={self.recursion_desired})'
