"""
服务模块

SDK 客户端、图像存储、错误处理、异常定义和结构化日志。
"""
