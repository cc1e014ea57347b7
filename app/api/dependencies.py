from app.services.passes import ProcessingPassStore
from app.services.quota import DailyQuota
from app.services.scanner import LinkScanner
from app.utils.redis_client import get_redis_client


def get_redis():
    return get_redis_client()


def get_pass_store():
    return ProcessingPassStore(get_redis())


def get_daily_quota():
    return DailyQuota(get_redis())


def get_scanner():
    return LinkScanner()
