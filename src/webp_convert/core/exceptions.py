"""项目内使用的自定义异常定义。"""


class WebpConvertError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(WebpConvertError):
    """配置不合法（目录缺失、并发数非法等）时抛出，批处理不会开始。"""


class ConverterNotFoundError(InvalidConfigurationError):
    """找不到 cwebp 可执行文件。"""
