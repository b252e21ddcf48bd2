# -*- coding: utf-8 -*-
"""
LocalJudge - 代码判题客户端
主入口：命令行模式

运行方式:
    localjudge login                         # 保存访问令牌
    localjudge languages                     # 列出服务支持的语言
    localjudge run main.py --stdin "1 2"     # 提交并等待判题结果
    localjudge run main.py --no-wait         # 异步提交并轮询
"""

from __future__ import annotations

import argparse
import getpass
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from loguru import logger

from . import __version__
from .services.credential_store import CredentialStore
from .services.exceptions import (
    ConfigError,
    CredentialError,
    LocalJudgeError,
    RunCancelledError,
    SourceError,
)
from .services.judge.ports import CredentialProvider, SourceProvider
from .services.judge_api import JudgeApi
from .services.logger import configure_logger
from .services.output_channel import OutputChannel
from .services.source_provider import FileSourceProvider
from .services.submission_runner import RunOptions, SubmissionRunner
from .services.unified_config import AppConfig, get_config_service
from .utils.concurrency import CancelToken, cancel_on_interrupt


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def _parse_expected_output(raw: Optional[str]):
    """期望输出优先按 JSON 解析，否则按原样字符串发送"""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _read_stdin_arg(args) -> Optional[str]:
    if args.stdin_file:
        try:
            return Path(args.stdin_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceError(f"cannot read stdin file {args.stdin_file}: {exc}") from exc
    return args.stdin


def cmd_login(args, cfg: AppConfig, output: OutputChannel) -> int:
    """保存访问令牌"""
    token = args.token
    if token is None:
        token = getpass.getpass("Paste access token: ")
    if not token or not token.strip():
        output.append_line("No token entered; nothing saved.")
        return EXIT_USAGE

    CredentialStore().set(token)
    output.append_line("LocalJudge token saved.")
    return EXIT_OK


def cmd_logout(args, cfg: AppConfig, output: OutputChannel) -> int:
    """删除已保存的访问令牌"""
    if CredentialStore().clear():
        output.append_line("LocalJudge token removed.")
    else:
        output.append_line("No saved token.")
    return EXIT_OK


def cmd_languages(args, cfg: AppConfig, output: OutputChannel) -> int:
    """列出服务支持的语言"""
    base_url = args.base_url or cfg.base_url
    api = JudgeApi.from_config(cfg)
    credentials: CredentialProvider = CredentialStore()

    output.append_line(f"GET {api.normalize_base_url(base_url)}{JudgeApi.LANGUAGES_PATH}")
    try:
        languages = api.list_languages(base_url, credentials.get_credential())
    except LocalJudgeError as exc:
        output.render_error(exc)
        return EXIT_FAILED

    output.append_line(f"Loaded languages: {len(languages)}")
    output.append_line(json.dumps([lang.model_dump() for lang in languages], ensure_ascii=False, indent=2))
    return EXIT_OK


def cmd_run(args, cfg: AppConfig, output: OutputChannel) -> int:
    """提交源文件并输出判题结果"""
    base_url = args.base_url or cfg.base_url
    language_id = args.language_id if args.language_id is not None else cfg.default_language_id
    dry_run = args.dry_run or cfg.dry_run

    cancel_token = CancelToken()
    options = RunOptions.from_config(
        cfg,
        cancel_signal=cancel_token,
        wait_for_result=args.wait,
        poll_interval_ms=args.poll_interval_ms,
        poll_timeout_ms=args.poll_timeout_ms,
    )
    wait_flag = "true" if options.wait_for_result else "false"

    source: SourceProvider = FileSourceProvider(args.file, language_id)
    document = source.get_source_and_language()
    request = document.to_request(
        stdin=_read_stdin_arg(args),
        expected_output=_parse_expected_output(args.expected_output),
    )

    post_line = f"POST {JudgeApi.normalize_base_url(base_url)}{JudgeApi.JUDGE_PATH}?wait={wait_flag}"
    output.append_line(post_line)
    output.append_line(f"file={document.path}")
    output.append_line(f"language_id={request.language_id}\n")
    output.capture_summary(document, request, cfg.preview_chars)

    if dry_run:
        output.append_line("DRY RUN is enabled. No network request will be sent.")
        output.append_line(f"Would call: {post_line}")
        return EXIT_OK

    credentials: CredentialProvider = CredentialStore()
    runner = SubmissionRunner(JudgeApi.from_config(cfg), reporter=output, credentials=credentials)

    try:
        if options.wait_for_result:
            result = runner.run(base_url, request, options=options)
        else:
            with cancel_on_interrupt(cancel_token, lambda: output.append_line("Cancelling after the current request...")):
                result = runner.run(base_url, request, options=options)
    except CredentialError:
        raise
    except RunCancelledError as exc:
        output.render_error(exc)
        return EXIT_CANCELLED
    except LocalJudgeError as exc:
        logger.debug(f"[Main] 运行失败: {exc!r}")
        output.render_error(exc)
        return EXIT_FAILED

    output.render_result(result)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="localjudge",
        description=f"LocalJudge v{__version__} - 代码判题客户端",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  localjudge login --token <TOKEN>
  localjudge languages
  localjudge run main.py --stdin "1 2"
  localjudge run main.py --no-wait --poll-timeout-ms 60000
        """
    )
    parser.add_argument("--config", help="配置文件路径 (默认: ~/.localjudge/config.json)")
    parser.add_argument("--log-level", help="日志级别 (默认取配置 log_level)")
    parser.add_argument("--traceback", action="store_true", help="出错时输出完整堆栈")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    p_login = sub.add_parser("login", help="保存访问令牌")
    p_login.add_argument("--token", help="访问令牌（不指定则交互输入）")
    p_login.set_defaults(handler=cmd_login)

    p_logout = sub.add_parser("logout", help="删除已保存的访问令牌")
    p_logout.set_defaults(handler=cmd_logout)

    p_langs = sub.add_parser("languages", help="列出服务支持的语言")
    p_langs.add_argument("--base-url", help="判题服务地址")
    p_langs.set_defaults(handler=cmd_languages)

    p_run = sub.add_parser("run", help="提交源文件并输出判题结果")
    p_run.add_argument("file", help="源文件路径")
    p_run.add_argument("--language-id", type=int, help="语言ID (默认取配置 default_language_id)")
    stdin_group = p_run.add_mutually_exclusive_group()
    stdin_group.add_argument("--stdin", help="标准输入文本")
    stdin_group.add_argument("--stdin-file", help="从文件读取标准输入")
    p_run.add_argument("--expected-output", help="期望输出（JSON，解析失败时按字符串发送）")
    wait_group = p_run.add_mutually_exclusive_group()
    wait_group.add_argument("--wait", dest="wait", action="store_const", const=True, help="服务端同步等待判题结果")
    wait_group.add_argument("--no-wait", dest="wait", action="store_const", const=False, help="异步提交并轮询")
    p_run.add_argument("--poll-interval-ms", type=int, help="轮询间隔（毫秒）")
    p_run.add_argument("--poll-timeout-ms", type=int, help="轮询超时（毫秒）")
    p_run.add_argument("--dry-run", action="store_true", help="只打印请求摘要，不发送")
    p_run.add_argument("--base-url", help="判题服务地址")
    p_run.set_defaults(handler=cmd_run, wait=None)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """主函数"""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        cfg = get_config_service(Path(args.config) if args.config else None).cfg
    except ConfigError as exc:
        print(f"[错误] {exc}", file=sys.stderr)
        return EXIT_USAGE

    configure_logger(args.log_level or cfg.log_level)
    output = OutputChannel(show_traceback=args.traceback)

    try:
        return args.handler(args, cfg, output)
    except (ConfigError, CredentialError, SourceError) as exc:
        output.render_error(exc)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
