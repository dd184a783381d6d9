from fastapi import Request


def client_ip(request: Request, *, trust_proxy_headers: bool = False) -> str:
    """Address used to key per-client quotas.

    Forwarded headers are only read when ``trust_proxy_headers`` is set.
    """
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"
