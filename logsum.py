"""
logsum: ログファイルの集計ツール

何をするツール？
- テキストログを1行ずつ読み、総行数と「レベル別件数」を集計する
- 同じメッセージが何回出たかの上位N件（--top N、default: 5）も出す

想定するログ行（形は強制しない）：
    2026-01-15 10:03:21 INFO  AuthService - User login ok
    2026-01-15 10:03:22 WARN  Billing     - Slow query detected
    2026-01-15 10:03:23 ERROR Billing     - ORA-12541: TNS no listener

終了コード：
  0: 成功 / 1: 引数が不正（usage を stdout に出す） / 2: ファイルが開けない
"""

from __future__ import annotations

import argparse
import heapq
import logging
import re
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, NoReturn, Sequence

import toolkit

LOGGER_NAME = "logsum"
DEFAULT_PROG = "logsum"
DEFAULT_TOP_N = 5

UNKNOWN_LEVEL = "UNKNOWN"

# 行から拾うレベル名（大文字小文字は区別しない）
LEVEL_CANDIDATES = ("TRACE", "DEBUG", "INFO", "WARN", "WARNING", "ERROR", "FATAL")
LEVEL_ALIASES = {"WARNING": "WARN"}

# 表示順（ここにないレベルは後ろに名前順で並べる）
PREFERRED_LEVEL_ORDER = ("INFO", "WARN", "ERROR", "DEBUG", "TRACE", "FATAL", UNKNOWN_LEVEL)

MESSAGE_SEPARATOR = " - "

# space, tab, LF, CR, FF, VT のみ（str.strip() の既定は Unicode の空白まで含むので使わない）
WHITESPACE = " \t\n\r\f\v"

_TOKEN_RE = re.compile(r"[^ \t\n\r\f\v]+")
_LEVEL_LOOKUP = {name: LEVEL_ALIASES.get(name, name) for name in LEVEL_CANDIDATES}


# -------------------------
# エラー
# -------------------------


class LogsumError(Exception):
    """logsum が終了コードに変換するエラーの基底クラス。"""

    exit_code = 1


class InvalidArguments(LogsumError):
    exit_code = 1


class FileOpenFailure(LogsumError):
    exit_code = 2

    def __init__(self, path: str) -> None:
        super().__init__(f"could not open file: {path}")
        self.path = path


# -------------------------
# CLIパース（I/O境界：入力）
# -------------------------


@dataclass(frozen=True)
class Options:
    """
    検証済みの実行オプション。設定ファイルや環境変数は持たない。

    path はユーザーが渡した文字列のまま持つ（エラー表示で "./x//a.log" が "x/a.log" に化けないように）。
    """

    path: str
    top_n: int = DEFAULT_TOP_N


class _ArgumentParser(argparse.ArgumentParser):
    # argparse 既定の「stderrに出して exit(2)」ではなく、呼び出し側に判断させる
    def error(self, message: str) -> NoReturn:
        raise InvalidArguments(message)


def _build_parser() -> _ArgumentParser:
    parser = _ArgumentParser(prog=DEFAULT_PROG, add_help=False, allow_abbrev=False)
    parser.add_argument("path")
    parser.add_argument("--top", type=int, default=DEFAULT_TOP_N)
    return parser


def parse_args(argv: Sequence[str]) -> Options:
    """
    CLI引数を検証して Options を返す。不正なら InvalidArguments。

    受け付ける形は2つだけ：
    - <log_file_path>
    - <log_file_path> --top N   （N は1以上の整数）

    それ以外（引数の数が違う、--top 以外のフラグ、--top=N、パスより前のフラグ）は全部弾く。
    """
    args = list(argv)
    if len(args) not in (1, 3):
        raise InvalidArguments(f"expected 1 or 3 arguments, got {len(args)}")
    if len(args) == 3 and args[1] != "--top":
        raise InvalidArguments(f"unknown option: {args[1]}")

    # パスは常に先頭。"--" の後ろに置けば "-" で始まるパスも位置引数として読める
    ns = _build_parser().parse_args([*args[1:], "--", args[0]])
    if ns.top < 1:
        raise InvalidArguments(f"--top must be >= 1: {ns.top}")
    return Options(path=ns.path, top_n=ns.top)


def format_usage(prog: str) -> str:
    return (
        "Usage:\n"
        f"  {prog} <log_file_path> [--top N]\n"
        "\n"
        "Examples:\n"
        f"  {prog} sample_logs/sample.log\n"
        f"  {prog} sample_logs/sample.log --top 10\n"
    )


# -------------------------
# 1行の解釈（副作用なし）
# -------------------------


@dataclass(frozen=True)
class Record:
    """
    1行ぶんの「解釈結果」DTO（level + message）。

    message は空文字のこともある（空行、" - " の後ろが空など）。
    """

    level: str
    message: str


def extract_level(line: str) -> str:
    """
    行を空白で区切り、左から順に最初に見つかったレベル名を返す。

    仕様として守りたいこと：
    - 比較は大文字小文字を無視（ASCIIの範囲だけ）
    - WARNING は WARN に寄せる
    - 見つからなければ UNKNOWN

    既知の制限：本文中の "error" のような単語が本来のレベル欄より前にあると、そちらを拾う。
    """
    for token in _TOKEN_RE.findall(line):
        if not token.isascii():
            continue
        level = _LEVEL_LOOKUP.get(token.upper())
        if level is not None:
            return level
    return UNKNOWN_LEVEL


def extract_message(line: str) -> str:
    """
    最初の " - " より後ろを message とする。なければ行全体。どちらも前後の空白を落とす。
    """
    _, sep, rest = line.partition(MESSAGE_SEPARATOR)
    if sep:
        return rest.strip(WHITESPACE)
    return line.strip(WHITESPACE)


def classify_line(line: str) -> Record:
    """どんな行が来ても例外にしない（雑ログ耐性）。"""
    return Record(level=extract_level(line), message=extract_message(line))


# -------------------------
# 集計
# -------------------------


@dataclass
class RunStatistics:
    """
    集計結果。1回の実行で1つ作り、1行ごとに fold で更新する。

    - total_lines: 読んだ行数（空行も数える）
    - level_counts: level別の件数（合計は total_lines と一致する）
    - message_counts: message別の件数（空の message は入れない）
    """

    total_lines: int = 0
    level_counts: Counter[str] = field(default_factory=Counter)
    message_counts: Counter[str] = field(default_factory=Counter)

    def fold(self, record: Record) -> None:
        self.total_lines += 1
        self.level_counts[record.level] += 1
        if record.message:
            self.message_counts[record.message] += 1


def accumulate(lines: Iterable[str]) -> RunStatistics:
    """行の列を1回だけ流して RunStatistics を作る（list化しない）。"""
    stats = RunStatistics()
    for line in lines:
        stats.fold(classify_line(line))
    return stats


def summarize_file(path: str, logger: logging.Logger) -> RunStatistics:
    """
    ファイルを開いて集計する。開けなければ FileOpenFailure。

    ファイルハンドルは with で閉じる（途中で例外が出ても閉じる）。
    """
    try:
        fp = toolkit.open_text(Path(path))
    except OSError as exc:
        logger.info("open failed: %s (%s)", path, exc)
        raise FileOpenFailure(path) from exc

    logger.info("read start: path=%s", path)
    with fp:
        stats = accumulate(toolkit.iter_lines(fp))
    logger.info("read done: total_lines=%d", stats.total_lines)
    return stats


# -------------------------
# 出力（表示形式）
# -------------------------


def ordered_levels(level_counts: Counter[str]) -> list[tuple[str, int]]:
    """
    表示順に並べた (level, count)。

    PREFERRED_LEVEL_ORDER にあるものを先に、それ以外は名前順で後ろに付ける。
    """
    head = [(lvl, level_counts[lvl]) for lvl in PREFERRED_LEVEL_ORDER if lvl in level_counts]
    tail = sorted((lvl, cnt) for lvl, cnt in level_counts.items() if lvl not in PREFERRED_LEVEL_ORDER)
    return head + tail


def rank_messages(message_counts: Counter[str], top_n: int) -> list[tuple[str, int]]:
    """
    頻出 message の上位 top_n 件を (message, count) で返す。

    並びは count の降順、同数なら message の昇順（コードポイント順）。
    """
    if top_n < 1:
        return []
    return heapq.nsmallest(top_n, message_counts.items(), key=lambda t: (-t[1], t[0]))


def render_report(stats: RunStatistics, top_n: int) -> str:
    lines = ["", "Summary", "-------", f"Total lines: {stats.total_lines}", "", "Log levels:"]
    for level, count in ordered_levels(stats.level_counts):
        lines.append(f"  {level}: {count}")

    lines += ["", "Top messages:"]
    top = rank_messages(stats.message_counts, top_n)
    for rank, (message, count) in enumerate(top, start=1):
        lines.append(f"  {rank}) {message} ({count})")
    if not top:
        lines.append("  (No messages found)")

    lines.append("")
    return "\n".join(lines) + "\n"


# -------------------------
# 実行フロー
# -------------------------


def main(argv: Sequence[str] | None = None, prog: str | None = None, verbose: bool = False) -> int:
    """
    実行入口（テストからも呼べる形）。終了コードを返す。

    - parse_args（入力検証）→ 失敗なら usage を stdout に出して 1
    - summarize_file（集計）→ 開けなければ stderr にエラーを出して 2
    - render_report（出力）→ 0
    """
    if argv is None:
        argv = sys.argv[1:]
    if prog is None:
        prog = Path(sys.argv[0]).name or DEFAULT_PROG

    logger = toolkit.setup_logger(LOGGER_NAME, verbose)

    try:
        options = parse_args(argv)
    except InvalidArguments as exc:
        logger.info("invalid arguments: %s", exc)
        toolkit.write_text(format_usage(prog))
        return exc.exit_code

    try:
        stats = summarize_file(options.path, logger)
    except FileOpenFailure as exc:
        toolkit.write_text(f"Error: Could not open file: {exc.path}\n", sys.stderr)
        return exc.exit_code

    toolkit.write_text(render_report(stats, options.top_n))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
