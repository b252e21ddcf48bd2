# -*- coding: utf-8 -*-
"""
LocalJudge - 代码判题客户端

把源代码提交到远程判题服务，并取回判题结果（同步等待或异步轮询）。
"""

__version__ = "0.1.0"
