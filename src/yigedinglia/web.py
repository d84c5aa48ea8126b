from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse

from .chain import (
    ChainIndex,
    IdiomEntry,
    TARGET_WORD,
    build_chain_index,
    resolve_chain,
)
from .dataset import load_dataset


@dataclass(slots=True)
class WebConfig:
    source: str | None = None
    seed: int | None = None


INDEX_HTML = """<!DOCTYPE html>
<html lang="zh-CN">
<head>
  <meta charset="utf-8">
  <title>一个顶俩</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    :root {
      font-family: -apple-system, BlinkMacSystemFont, "Helvetica Neue", "PingFang SC", sans-serif;
      --text: #24292e;
      --muted: #6a737d;
      --danger: #d73a49;
    }
    body {
      margin: 0 auto;
      max-width: 42rem;
      padding: 2rem 1.2rem;
      color: var(--text);
      line-height: 1.6;
    }
    h1 {
      border-bottom: 1px solid #eaecef;
      padding-bottom: 0.3em;
    }
    input {
      font-size: 1.1rem;
      padding: 0.35rem 0.5rem;
      width: 12rem;
    }
    .muted {
      color: var(--muted);
    }
    .error {
      color: var(--danger);
    }
    footer {
      margin-top: 2.5rem;
      font-size: 0.9rem;
    }
  </style>
</head>
<body>
  <h1>一个顶俩</h1>
  <p>请输入一个四字成语，<wbr>如成功识别：</p>
  <p>本页面将自动为你<wbr>接龙到“一个顶俩”</p>
  <p><input id="word" type="text" autocomplete="off"></p>
  <div id="output"></div>
  <footer class="muted">
    <p>数据来源：<wbr><a href="https://github.com/pwxcoo/chinese-xinhua">pwxcoo/chinese-xinhua</a></p>
  </footer>
  <script>
    const input = document.getElementById("word");
    const output = document.getElementById("output");
    let pending = 0;

    function renderEmpty() {
      output.innerHTML = "";
      const intro = document.createElement("p");
      intro.textContent = "没有输出？情况可能是以下两种之一：";
      const list = document.createElement("ul");
      for (const reason of ["不是四字成语，或成语在词库中不存在", "成语存在，但是无法接龙到“一个顶俩”"]) {
        const item = document.createElement("li");
        item.textContent = reason;
        list.appendChild(item);
      }
      output.append(intro, list);
    }

    function renderChain(chain) {
      output.innerHTML = "";
      const intro = document.createElement("p");
      intro.textContent = `接龙到“一个顶俩”共 ${chain.length - 1} 步：`;
      const list = document.createElement("ul");
      for (const link of chain) {
        const item = document.createElement("li");
        item.textContent = `${link.word}（${link.pinyin}）`;
        list.appendChild(item);
      }
      output.append(intro, list);
    }

    async function lookup(word) {
      const ticket = ++pending;
      if (!word) {
        renderEmpty();
        return;
      }
      try {
        const response = await fetch(`/api/chain?word=${encodeURIComponent(word)}`);
        const payload = await response.json();
        if (ticket !== pending) {
          return;
        }
        if (payload.chain && payload.chain.length) {
          renderChain(payload.chain);
        } else {
          renderEmpty();
        }
      } catch (err) {
        output.innerHTML = "";
        const message = document.createElement("p");
        message.className = "error";
        message.textContent = `加载异常，请刷新重试：${err}`;
        output.appendChild(message);
      }
    }

    input.addEventListener("input", () => lookup(input.value.trim()));
    renderEmpty();
  </script>
</body>
</html>
"""


def _chain_status(index: ChainIndex, word: str) -> tuple[str, int | None]:
    idiom = index.lookup(word)
    if idiom is None:
        return "unknown", None
    if idiom.level is None:
        return "unreachable", None
    return "ok", idiom.level


def _stats_payload(index: ChainIndex) -> dict[str, object]:
    counts = index.level_counts()
    unreachable = counts.pop(None, 0)
    levels = {str(level): counts[level] for level in sorted(counts)}
    return {
        "target": TARGET_WORD,
        "total": len(index),
        "reachable": sum(counts.values()),
        "unreachable": unreachable,
        "skipped": index.skipped,
        "levels": levels,
    }


def create_app(config: WebConfig, *, entries: Iterable[IdiomEntry] | None = None) -> FastAPI:
    if entries is None:
        entries = load_dataset(config.source)
    index = build_chain_index(entries)
    rng = random.Random(config.seed)

    app = FastAPI(title="一个顶俩")
    app.state.config = config
    app.state.index = index

    @app.get("/", response_class=HTMLResponse)
    def index_page() -> str:
        return INDEX_HTML

    @app.get("/api/chain")
    def api_chain(word: str = Query("")) -> JSONResponse:
        word = word.strip()
        if not word:
            raise HTTPException(status_code=400, detail="Query parameter 'word' is required")
        status, level = _chain_status(index, word)
        chain = resolve_chain(word, index, rng=rng)
        return JSONResponse(
            {
                "word": word,
                "status": status,
                "level": level,
                "chain": [link.to_dict() for link in chain],
            }
        )

    @app.get("/api/stats")
    def api_stats() -> JSONResponse:
        return JSONResponse(_stats_payload(index))

    return app
