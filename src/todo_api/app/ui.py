from __future__ import annotations

from html import escape

_PAGE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>__APP_NAME__ · Todo List</title>
  <style>
    :root {
      --bg: #f3efe6;
      --panel: #fffaf0;
      --ink: #112433;
      --muted: #5c6b74;
      --accent: #0f8b8d;
      --line: #d7d1c3;
      --warn: #b00020;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      font-family: system-ui, sans-serif;
      color: var(--ink);
      background: var(--bg);
    }
    .wrap { max-width: 640px; margin: 24px auto; padding: 0 16px; display: grid; gap: 16px; }
    .card { background: var(--panel); border: 1px solid var(--line); border-radius: 12px; padding: 16px; }
    .title { margin: 0; }
    .row { display: flex; gap: 8px; flex-wrap: wrap; align-items: center; }
    input[type="text"] {
      flex: 1;
      border: 1px solid var(--line);
      border-radius: 8px;
      padding: 8px 10px;
      font-size: 1rem;
    }
    button {
      border: 1px solid var(--line);
      border-radius: 8px;
      padding: 8px 12px;
      background: #fff;
      cursor: pointer;
    }
    button.primary { background: var(--accent); border-color: var(--accent); color: #fff; }
    button.active { border-color: var(--accent); color: var(--accent); font-weight: 700; }
    ul { list-style: none; margin: 0; padding: 0; }
    li { display: flex; gap: 8px; align-items: center; padding: 8px 0; border-bottom: 1px solid var(--line); }
    li .text { flex: 1; word-break: break-word; }
    li.done .text { text-decoration: line-through; color: var(--muted); }
    .empty { color: var(--muted); }
    .status { margin: 0; font-size: 0.9rem; color: var(--muted); }
    .error { color: var(--warn); }
  </style>
</head>
<body>
  <main class="wrap">
    <section class="card">
      <h1 class="title">Todo List</h1>
      <div class="row" style="margin-top: 12px;">
        <input type="text" id="taskInput" maxlength="500" placeholder="What needs to be done?">
        <button class="primary" id="addBtn">Add</button>
      </div>
      <p class="status" id="statusText">Loading...</p>
    </section>

    <section class="card">
      <div class="row">
        <button class="filter-btn active" id="all">All</button>
        <button class="filter-btn" id="active">Active</button>
        <button class="filter-btn" id="completed">Completed</button>
      </div>
      <ul id="taskList"></ul>
      <div class="row" style="margin-top: 12px; justify-content: space-between;">
        <span id="tasksCount">0 items left</span>
        <button id="clearCompleted">Clear completed</button>
      </div>
    </section>
  </main>

  <script>
    const API_BASE_URL = "/api";
    const taskInput = document.getElementById("taskInput");
    const taskList = document.getElementById("taskList");
    const tasksCount = document.getElementById("tasksCount");
    const statusText = document.getElementById("statusText");
    const filterButtons = document.querySelectorAll(".filter-btn");

    let currentFilter = "all";
    let tasks = [];

    function setStatus(message, isError = false) {
      statusText.textContent = message;
      statusText.classList.toggle("error", isError);
    }

    async function request(path, method = "GET", body) {
      const options = { method, headers: {} };
      if (body !== undefined) {
        options.headers["Content-Type"] = "application/json";
        options.body = JSON.stringify(body);
      }
      const response = await fetch(`${API_BASE_URL}${path}`, options);
      let data = null;
      try {
        data = await response.json();
      } catch (err) {
        // Non-JSON bodies (proxy error pages) fall back to the status code.
        data = null;
      }
      if (!response.ok) {
        throw new Error((data && data.error) || `HTTP error ${response.status}`);
      }
      if (data === null) {
        throw new Error(`Unexpected response from server (HTTP ${response.status})`);
      }
      return data;
    }

    async function loadTasks() {
      try {
        tasks = await request("/tasks");
        renderTasks();
        setStatus("Ready.");
      } catch (err) {
        tasks = [];
        renderTasks();
        setStatus(`Failed to load tasks: ${err.message}`, true);
      }
    }

    async function addTask() {
      const text = taskInput.value.trim();
      if (!text) {
        setStatus("Please enter a task!", true);
        return;
      }
      try {
        await request("/tasks", "POST", { text });
        taskInput.value = "";
        await loadTasks();
        setStatus("Task added.");
      } catch (err) {
        setStatus(err.message, true);
      }
    }

    async function updateTask(id, updates) {
      try {
        await request(`/tasks/${id}`, "PUT", updates);
        await loadTasks();
      } catch (err) {
        setStatus(err.message, true);
      }
    }

    async function deleteTask(id) {
      try {
        await request(`/tasks/${id}`, "DELETE");
        await loadTasks();
        setStatus("Task deleted.");
      } catch (err) {
        setStatus(err.message, true);
      }
    }

    async function clearCompletedTasks() {
      const done = tasks.filter((task) => task.completed);
      if (done.length === 0) {
        setStatus("No completed tasks to clear", true);
        return;
      }
      let failure = null;
      try {
        await Promise.all(done.map((task) => request(`/tasks/${task.id}`, "DELETE")));
      } catch (err) {
        failure = err;
      }
      // Reload first: loadTasks() resets the status line.
      await loadTasks();
      if (failure) {
        setStatus(failure.message, true);
      } else {
        setStatus(`Cleared ${done.length} completed task(s).`);
      }
    }

    function editTask(task, textSpan) {
      const field = document.createElement("input");
      field.type = "text";
      field.maxLength = 500;
      field.value = task.text;
      textSpan.replaceWith(field);
      field.focus();
      let finished = false;
      const finish = async (save) => {
        if (finished) return;
        finished = true;
        const text = field.value.trim();
        if (save && text && text !== task.text) {
          await updateTask(task.id, { text });
        } else {
          renderTasks();
        }
      };
      field.addEventListener("keydown", (e) => {
        if (e.key === "Enter") finish(true);
        if (e.key === "Escape") finish(false);
      });
      field.addEventListener("blur", () => finish(true));
    }

    function visibleTasks() {
      if (currentFilter === "active") return tasks.filter((task) => !task.completed);
      if (currentFilter === "completed") return tasks.filter((task) => task.completed);
      return tasks;
    }

    function renderTasks() {
      taskList.innerHTML = "";
      const shown = visibleTasks();
      if (shown.length === 0) {
        const empty = document.createElement("li");
        empty.className = "empty";
        empty.textContent = "No tasks here.";
        taskList.appendChild(empty);
      }
      for (const task of shown) {
        const item = document.createElement("li");
        item.classList.toggle("done", task.completed);

        const checkbox = document.createElement("input");
        checkbox.type = "checkbox";
        checkbox.checked = task.completed;
        checkbox.addEventListener("change", () => updateTask(task.id, { completed: checkbox.checked }));

        const textSpan = document.createElement("span");
        textSpan.className = "text";
        textSpan.textContent = task.text;
        textSpan.addEventListener("dblclick", () => editTask(task, textSpan));

        const editBtn = document.createElement("button");
        editBtn.textContent = "Edit";
        editBtn.addEventListener("click", () => editTask(task, textSpan));

        const deleteBtn = document.createElement("button");
        deleteBtn.textContent = "Delete";
        deleteBtn.addEventListener("click", () => deleteTask(task.id));

        item.append(checkbox, textSpan, editBtn, deleteBtn);
        taskList.appendChild(item);
      }
      const remaining = tasks.filter((task) => !task.completed).length;
      tasksCount.textContent = `${remaining} item${remaining === 1 ? "" : "s"} left`;
    }

    document.getElementById("addBtn").addEventListener("click", addTask);
    taskInput.addEventListener("keydown", (e) => {
      if (e.key === "Enter") addTask();
    });
    document.getElementById("clearCompleted").addEventListener("click", clearCompletedTasks);
    filterButtons.forEach((btn) => {
      btn.addEventListener("click", () => {
        currentFilter = btn.id;
        filterButtons.forEach((other) => other.classList.toggle("active", other === btn));
        renderTasks();
      });
    });

    loadTasks();
  </script>
</body>
</html>
"""


def render_homepage(app_name: str = "todo-api") -> str:
    return _PAGE.replace("__APP_NAME__", escape(app_name))
