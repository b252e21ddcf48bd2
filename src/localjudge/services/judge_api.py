# -*- coding: utf-8 -*-
# 判题服务 API 封装 - 列出语言、创建提交、查询提交

from __future__ import annotations

import json
from typing import Optional, Dict, Any, List
from urllib.parse import quote

import requests
from loguru import logger
from pydantic import ValidationError

from .exceptions import TransportError, NotFoundError, ProtocolError
from .models import Language, SubmissionRequest, SubmissionResult


class JudgeApi:
    """与判题服务的交互封装

    不做任何内部重试：轮询重试由 SubmissionRunner 负责，一次性调用的重试由调用方负责。
    """

    LANGUAGES_PATH = "/code-judge/judge/languages"
    JUDGE_PATH = "/code-judge/judge"

    def __init__(
        self,
        timeout: float = 30,
        proxies: dict | None = None,
        verify_ssl: bool = True,
        session: requests.Session | None = None,
    ):
        self.timeout = timeout
        self.proxies = proxies or None
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg, session: requests.Session | None = None) -> "JudgeApi":
        """根据 AppConfig 构造"""
        proxies = None
        if cfg.proxy_enabled:
            proxies = {k: v for k, v in (("http", cfg.http_proxy), ("https", cfg.https_proxy)) if v}
        return cls(timeout=cfg.request_timeout, proxies=proxies, verify_ssl=cfg.verify_ssl, session=session)

    @staticmethod
    def normalize_base_url(base_url: str) -> str:
        return base_url.rstrip("/")

    @staticmethod
    def _headers(access_token: Optional[str], json_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _check(self, operation: str, url: str, r: requests.Response) -> requests.Response:
        """非 2xx 响应转换为 TransportError（保留响应体）"""
        if 200 <= r.status_code < 300:
            return r
        body = r.text or ""
        logger.warning(f"[JudgeApi] {operation}: HTTP {r.status_code} {r.reason}")
        logger.debug(f"[JudgeApi] 响应内容: {body[:500]}")
        error_cls = NotFoundError if r.status_code == 404 else TransportError
        raise error_cls(operation, r.status_code, r.reason, body, url=url)

    @staticmethod
    def _decode(operation: str, r: requests.Response) -> Any:
        try:
            return r.json()
        except ValueError as exc:
            raise ProtocolError(f"{operation}: response is not valid JSON: {(r.text or '')[:200]}") from exc

    @staticmethod
    def _to_result(operation: str, data: Any) -> SubmissionResult:
        if not isinstance(data, dict):
            raise ProtocolError(f"{operation}: expected a JSON object, got {type(data).__name__}")
        try:
            return SubmissionResult.model_validate(data)
        except ValidationError as exc:
            raise ProtocolError(f"{operation}: unexpected response shape: {exc}") from exc

    def list_languages(self, base_url: str, access_token: Optional[str] = None) -> List[Language]:
        """获取服务支持的语言列表"""
        operation = "GET languages"
        url = f"{self.normalize_base_url(base_url)}{self.LANGUAGES_PATH}"
        logger.debug(f"[JudgeApi] GET {url}")

        try:
            r = self.session.get(
                url,
                headers=self._headers(access_token),
                timeout=self.timeout,
                proxies=self.proxies,
                verify=self.verify_ssl,
            )
        except requests.RequestException as exc:
            raise TransportError(operation, None, body=str(exc), url=url) from exc

        data = self._decode(operation, self._check(operation, url, r))
        if not isinstance(data, list):
            raise ProtocolError(f"{operation}: expected a JSON array, got {type(data).__name__}")
        try:
            languages = [Language.model_validate(item) for item in data]
        except ValidationError as exc:
            raise ProtocolError(f"{operation}: unexpected language entry: {exc}") from exc

        logger.debug(f"[JudgeApi] 获取到 {len(languages)} 种语言")
        return languages

    def create_submission(
        self,
        base_url: str,
        wait: bool,
        request: SubmissionRequest,
        access_token: Optional[str] = None,
    ) -> SubmissionResult:
        """创建提交；wait=true 时服务端阻塞到判题结束"""
        operation = "POST judge"
        url = f"{self.normalize_base_url(base_url)}{self.JUDGE_PATH}?wait={'true' if wait else 'false'}"
        logger.info(f"[JudgeApi] POST {url}")
        logger.debug(f"[JudgeApi] language_id={request.language_id}, 代码长度: {len(request.source_code)}")

        try:
            r = self.session.post(
                url,
                headers=self._headers(access_token, json_body=True),
                data=json.dumps(request.to_payload(), ensure_ascii=False).encode("utf-8"),
                timeout=self.timeout,
                proxies=self.proxies,
                verify=self.verify_ssl,
            )
        except requests.RequestException as exc:
            raise TransportError(operation, None, body=str(exc), url=url) from exc

        return self._to_result(operation, self._decode(operation, self._check(operation, url, r)))

    def fetch_submission(
        self,
        base_url: str,
        token: str,
        access_token: Optional[str] = None,
    ) -> SubmissionResult:
        """按 continuation token 查询提交"""
        operation = "GET submission"
        url = f"{self.normalize_base_url(base_url)}{self.JUDGE_PATH}/{quote(token, safe='')}"
        logger.debug(f"[JudgeApi] GET {url}")

        try:
            r = self.session.get(
                url,
                headers=self._headers(access_token),
                timeout=self.timeout,
                proxies=self.proxies,
                verify=self.verify_ssl,
            )
        except requests.RequestException as exc:
            raise TransportError(operation, None, body=str(exc), url=url) from exc

        return self._to_result(operation, self._decode(operation, self._check(operation, url, r)))
