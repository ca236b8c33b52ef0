from gdgoc_certs.modules.auth.identity import CallerIdentity, identity_from_headers

__all__ = ["CallerIdentity", "identity_from_headers"]
