"""
logsum 用の「I/Oまわり」部品集（toolkit）

狙い：
- logger構成とファイルの行読み取りを、集計ロジック（logsum）から切り離す
- logsum 本体は「1行をどう解釈して、どう数えるか」に集中できるようにする

注意：
- ここに入れるのは「ツール固有の意味を持たないもの」だけ
- 終了コードやエラーメッセージの文言は logsum 側で持つ
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable, Iterator, TextIO


def setup_logger(name: str, verbose: bool) -> logging.Logger:
    """
    ログをstderrに出すためのloggerを構成する。

    設計意図：
    - stdoutは「集計結果（Summary）」と usage の出力で使う
    - なので進捗/診断はstderrへ寄せる
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.propagate = False

    logger.handlers.clear()

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
    return logger


def open_text(path: Path) -> TextIO:
    """
    ログファイルを読み取り用に開く。開けなければ OSError がそのまま上がる。

    仕様：
    - 行の区切りは "\\n" だけ（"\\r" 単独では改行扱いしない）
    - 文字コードは UTF-8。壊れたバイトは surrogateescape で「元のバイトのまま」保持する
      （別々のバイト列が同じ文字に潰れない。write_text で元のバイトに戻して出力できる）
    """
    return path.open("r", encoding="utf-8", errors="surrogateescape", newline="\n")


def iter_lines(fp: Iterable[str]) -> Iterator[str]:
    """行末の "\\n" を落として1行ずつ返す。最終行は改行で終わっていなくてもよい。"""
    for raw in fp:
        if raw.endswith("\n"):
            raw = raw[:-1]
        yield raw


def write_text(text: str, stream: TextIO | None = None) -> None:
    """
    text を UTF-8 のバイト列として stream（既定は stdout）に書く。

    仕様：
    - 端末/ロケールの文字コードに依存しない（latin-1 などの stdout でも落ちない）
    - open_text で保持した壊れたバイトは、読んだときのバイトのまま出す
    """
    if stream is None:
        stream = sys.stdout
    data = text.encode("utf-8", errors="surrogateescape")

    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        # バイト層を持たない stream（io.StringIO など）には文字列で書く
        stream.write(data.decode("utf-8", errors="replace"))
        return

    # テキスト層に溜まっている分を先に出してから、バイト層に直接書く
    stream.flush()
    buffer.write(data)
    buffer.flush()
