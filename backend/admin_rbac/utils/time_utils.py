from datetime import UTC, datetime


class Datetime:
    """
    统一的时间处理工具类
    系统内部（数据库、排序逻辑）统一使用带时区的 UTC 时间
    """

    @staticmethod
    def now() -> datetime:
        """获取当前 UTC 时间（带时区信息）"""
        return datetime.now(UTC)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """naive 时间视为 UTC（SQLite 读回的时间不带时区）"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    @staticmethod
    def to_timestamp(dt: datetime) -> float:
        return Datetime.ensure_utc(dt).timestamp()
