from equiptrak.main import app

__all__ = ["app"]
