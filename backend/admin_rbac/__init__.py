"""
RBAC 管理后台服务
"""
