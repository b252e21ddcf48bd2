# -*- coding: utf-8 -*-
"""
LocalJudge Services Layer

- judge_api: 判题服务 HTTP 传输层
- judge: 状态分类与宿主协作接口
- submission_runner: 提交生命周期管理（同步等待 / 异步轮询）
- unified_config / credential_store / logger / output_channel: 宿主侧支撑
"""
