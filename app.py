#!/usr/bin/env python3
"""
Core War MARS - Interactive Web Interface

Load up to four warriors, then step or run the simulator and watch the
core from the browser.
"""

import threading
from typing import Optional

from flask import Flask, render_template_string, jsonify, request

from corewar.config import SimulatorConfig
from corewar.loader import LoadError, WarriorDefinition, MAX_WARRIORS
from corewar.mars import MARS, MatchStatus, CycleReport
from corewar.redcode import WARRIORS, read_metadata

config = SimulatorConfig.from_env()

app = Flask(__name__)

mars = MARS(
    core_size=config.core_size,
    max_processes=config.max_processes,
    max_cycles=config.max_cycles,
    log_size=config.log_size,
)
mars_lock = threading.Lock()


class LiveDriver:
    """
    Paces a MARS with a background thread.

    The driver only decides *when* to call ``step()``; every bit of
    simulation state stays on the MARS, so running live and stepping by
    hand produce the same sequence of states.
    """

    def __init__(self, mars: MARS, lock: threading.Lock, tick_ms: int = 50):
        self.mars = mars
        self.lock = lock
        self.tick = tick_ms / 1000.0
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.is_running:
            return False
        with self.lock:
            self.mars.start()
            if self.mars.status != MatchStatus.RUNNING:
                return False
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        with self.lock:
            self.mars.pause()

    def _loop(self):
        while not self._stop.is_set():
            with self.lock:
                if self.mars.status != MatchStatus.RUNNING:
                    break
                self.mars.step()
            self._stop.wait(self.tick)


driver = LiveDriver(mars, mars_lock, config.tick_ms)


def _report_to_dict(report: Optional[CycleReport]) -> Optional[dict]:
    if report is None:
        return None
    return {
        "cycle": report.cycle,
        "warrior_id": report.warrior_id,
        "pc": report.pc,
        "touched": sorted(report.touched),
        "killed": report.killed,
        "spawned_pc": report.spawned_pc,
        "eliminated": report.eliminated,
    }


def _state() -> dict:
    snapshot = mars.snapshot()
    snapshot["running"] = driver.is_running
    return snapshot


HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Core War Redcode Emulator (MARS)</title>
    <style>
        body { font-family: monospace; background: #111827; color: #e5e7eb; margin: 1.5rem; }
        .layout { display: grid; grid-template-columns: 360px 1fr; gap: 1.5rem; }
        textarea { width: 100%; height: 9rem; background: #0b0f19; color: #e5e7eb; }
        input { background: #0b0f19; color: #e5e7eb; }
        button { margin: 0.2rem; padding: 0.4rem 0.8rem; }
        canvas { image-rendering: pixelated; width: 100%; }
        #log { height: 12rem; overflow-y: auto; font-size: 0.8rem; color: #9ca3af; }
        .error { color: #f87171; }
    </style>
</head>
<body>
    <h1>Core War Redcode Emulator (MARS)</h1>
    <div class="layout">
        <div>
            <div id="editors"></div>
            <button onclick="addWarrior()">+ Add</button>
            <button onclick="loadWarriors()">Load All Warriors</button>
            <div>
                <button onclick="post('/api/run')">Run</button>
                <button onclick="post('/api/pause')">Pause</button>
                <button onclick="post('/api/step')">Step Cycle</button>
                <button onclick="post('/api/reset')">Reset</button>
            </div>
            <p id="status"></p>
            <p id="error" class="error"></p>
        </div>
        <div>
            <canvas id="core" width="100" height="{{ rows }}"></canvas>
            <div id="log"></div>
        </div>
    </div>
    <script>
        const MAX_WARRIORS = {{ max_warriors }};
        let defs = [{name: "Imp", source: "MOV 0, 1"}, {name: "Dwarf", source: "ADD #4, 3\\nMOV 2, @2\\nJMP -2\\nDAT #0, #2"}];

        function renderEditors() {
            const box = document.getElementById("editors");
            box.innerHTML = "";
            defs.forEach((d, i) => {
                const name = document.createElement("input");
                name.value = d.name;
                name.oninput = e => defs[i].name = e.target.value;
                const src = document.createElement("textarea");
                src.value = d.source;
                src.oninput = e => defs[i].source = e.target.value;
                box.append(name, src);
            });
        }

        function addWarrior() {
            if (defs.length < MAX_WARRIORS) { defs.push({name: "", source: ""}); renderEditors(); }
        }

        async function loadWarriors() {
            const res = await fetch("/api/load", {method: "POST", headers: {"Content-Type": "application/json"},
                                                  body: JSON.stringify({warriors: defs})});
            const body = await res.json();
            document.getElementById("error").textContent = res.ok ? "" : body.error;
            refresh();
        }

        async function post(url) { await fetch(url, {method: "POST"}); refresh(); }

        async function refresh() {
            const state = await (await fetch("/api/state")).json();
            const core = await (await fetch("/api/core")).json();
            document.getElementById("status").textContent =
                `Status: ${state.status} | Cycle: ${state.cycle} | Warriors: ${state.warriors.length} | Processes: ${state.process_count}`;
            document.getElementById("log").innerHTML = state.log.map(l => `<div>${l}</div>`).join("");
            const colors = {};
            state.warriors.forEach(w => colors[w.id] = w.color);
            const ctx = document.getElementById("core").getContext("2d");
            const touched = new Set(state.touched);
            core.cells.forEach((cell, i) => {
                ctx.fillStyle = touched.has(i) ? "#ffffff" : (cell.owner ? (colors[cell.owner] || "#6b7280") : "#1f2937");
                ctx.fillRect(i % 100, Math.floor(i / 100), 1, 1);
            });
        }

        renderEditors();
        refresh();
        setInterval(refresh, 500);
    </script>
</body>
</html>
"""


@app.route('/')
def index():
    rows = -(-mars.core_size // 100)
    return render_template_string(HTML_TEMPLATE, rows=rows, max_warriors=MAX_WARRIORS)


@app.route('/api/warriors')
def api_warriors():
    """Bundled example warriors."""
    return jsonify({
        key: {"name": read_metadata(source).get("name", key), "source": source}
        for key, source in WARRIORS.items()
    })


@app.route('/api/load', methods=['POST'])
def api_load():
    """Load warriors into a fresh core."""
    data = request.get_json(silent=True) or {}
    entries = data.get("warriors")
    if not isinstance(entries, list):
        return jsonify({"error": "Expected a list of warriors"}), 400

    definitions = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict) or not isinstance(entry.get("source", ""), str):
            return jsonify({"error": f"Warrior {i + 1} is malformed"}), 400
        definitions.append(WarriorDefinition(
            id=i + 1,
            name=entry.get("name") or "",
            source=entry.get("source", ""),
            color=entry.get("color") or "",
        ))

    seed = data.get("seed", config.seed)
    driver.stop()
    with mars_lock:
        try:
            mars.load(definitions, seed=seed)
        except LoadError as e:
            return jsonify(e.to_dict()), 400
        return jsonify(_state())


@app.route('/api/step', methods=['POST'])
def api_step():
    """Advance exactly one cycle."""
    if driver.is_running:
        return jsonify({"error": "Pause before stepping"}), 409
    with mars_lock:
        report = mars.step()
        return jsonify({"report": _report_to_dict(report), "state": _state()})


@app.route('/api/run', methods=['POST'])
def api_run():
    started = driver.start()
    with mars_lock:
        return jsonify({"started": started, "state": _state()})


@app.route('/api/pause', methods=['POST'])
def api_pause():
    driver.stop()
    with mars_lock:
        return jsonify(_state())


@app.route('/api/reset', methods=['POST'])
def api_reset():
    driver.stop()
    with mars_lock:
        mars.reset()
        return jsonify(_state())


@app.route('/api/state')
def api_state():
    with mars_lock:
        return jsonify(_state())


@app.route('/api/core')
def api_core():
    """Owner and mnemonic of every cell."""
    with mars_lock:
        return jsonify({"core_size": mars.core_size, "cells": mars.core_view()})


@app.route('/api/snippet')
def api_snippet():
    """Cells around a warrior's program counter."""
    warrior = request.args.get("warrior", type=int)
    center = request.args.get("center", type=int)
    window = request.args.get("window", default=25, type=int)
    with mars_lock:
        return jsonify(mars.memory_snippet(owner=warrior, center=center, window=window))


if __name__ == '__main__':
    port = config.port
    print("\n" + "="*50)
    print("Core War MARS - Web Interface")
    print("="*50)
    print(f"\nOpen in your browser: http://localhost:{port}")
    print("\nPress Ctrl+C to stop\n")

    app.run(host='0.0.0.0', port=port, debug=False)
