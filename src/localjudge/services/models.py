# -*- coding: utf-8 -*-
"""
判题数据模型 (Pydantic)

SubmissionResult 的所有字段都可能缺失：缺失表示"尚未知道"，而不是"为空"。
服务端额外返回的字段原样保留。
"""

from typing import Optional, Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubmissionRequest(BaseModel):
    """一次运行请求（创建后不可修改）"""
    model_config = ConfigDict(frozen=True)

    language_id: int = Field(..., description="语言ID（由远程服务的语言目录定义）")
    source_code: str = Field(..., description="源代码")
    stdin: Optional[str] = Field(None, description="标准输入")
    expected_output: Optional[Any] = Field(None, description="期望输出（形状由服务定义）")

    def to_payload(self) -> dict:
        """请求体，未设置的可选字段不发送"""
        return self.model_dump(exclude_none=True)


class SubmissionStatus(BaseModel):
    """判题状态描述"""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    description: Optional[str] = None


class SubmissionResult(BaseModel):
    """服务端返回的提交结果（部分填充）"""
    model_config = ConfigDict(extra="allow")

    stdout: Optional[str] = None
    stderr: Optional[str] = None
    compile_output: Optional[str] = None
    message: Optional[str] = None
    token: Optional[str] = None
    time: Optional[str] = None
    memory: Optional[Union[int, float]] = None
    status: Optional[SubmissionStatus] = None

    @field_validator("time", mode="before")
    @classmethod
    def _time_as_text(cls, value):
        # 部分服务把耗时返回为数字
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class Language(BaseModel):
    """语言目录条目，字段形状由服务端决定，原样保留"""
    model_config = ConfigDict(extra="allow")

    id: Optional[Any] = None
    name: Optional[Any] = None
