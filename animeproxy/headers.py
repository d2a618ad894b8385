from requests.structures import CaseInsensitiveDict

CACHE_VALIDATOR_HEADERS = ("If-None-Match", "If-Modified-Since")


def cache_validators(inbound_headers):
    """Pick the conditional-request headers out of an inbound header mapping."""
    found = {}
    for name in CACHE_VALIDATOR_HEADERS:
        value = inbound_headers.get(name)
        if value:
            found[name] = value
    return found


def synthesize_headers(template, default_headers, range_header=None, conditional_headers=None):
    """Build the outbound header set for one upstream fetch.

    Defaults first, then whichever of Origin/Referer/Sec-Fetch-Site the
    matched template sets, then the client's Range, asked for unencoded.
    Conditional headers only go upstream when the template opts in with
    ``use_cache_headers``.
    """
    headers = CaseInsensitiveDict(default_headers)

    if template is not None:
        if template.origin:
            headers["Origin"] = template.origin
        if template.referer:
            headers["Referer"] = template.referer
        if template.sec_fetch_site:
            headers["Sec-Fetch-Site"] = template.sec_fetch_site
        if template.use_cache_headers and conditional_headers:
            headers.update(conditional_headers)

    if range_header:
        headers["Range"] = range_header
        # a decoded body would no longer match the upstream Content-Range
        headers["Accept-Encoding"] = "identity"

    return headers
