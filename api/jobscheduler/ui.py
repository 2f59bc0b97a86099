from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

@router.get("/", response_class=HTMLResponse)
def home():
    return """
<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>Job Scheduler</title>
  <style>
    body{font-family: sans-serif; max-width: 1000px; margin: 30px auto; padding: 0 12px;}
    input,select,button,textarea{padding:8px; font-size:15px;}
    textarea{width:100%; font-family: monospace;}
    table{width:100%; border-collapse: collapse; margin-top:10px;}
    th,td{border-bottom:1px solid #ddd; padding:8px; text-align:left;}
    .row{display:flex; gap:10px; align-items:center; flex-wrap: wrap;}
    .grow{flex:1;}
    .cards{display:flex; gap:10px; flex-wrap: wrap; margin:16px 0;}
    .card{border:1px solid #ddd; border-radius:10px; padding:10px 14px; min-width:110px;}
    .card b{display:block; font-size:22px;}
    .muted{color:#666;}
    .status-pending{color:#b8860b;}
    .status-running{color:#0b5fff;}
    .status-completed{color:#1a7f37;}
    .status-failed{color:#cf222e;}
    .details td{background:#f7f7f7;}
    .details pre{margin:4px 0; white-space:pre-wrap;}
    section{margin-top:24px;}
  </style>
</head>
<body>
  <h2>Job Scheduler</h2>

  <div class="cards" id="cards"></div>

  <section>
    <h3>New job</h3>
    <div class="row">
      <input id="taskName" class="grow" placeholder="Task name, e.g. Send Email" />
      <select id="priority">
        <option>Low</option>
        <option selected>Medium</option>
        <option>High</option>
      </select>
      <button onclick="createJob()">Create</button>
    </div>
    <div style="margin-top:8px;">
      <textarea id="payload" rows="3" placeholder='Payload JSON, e.g. {"email": "test@example.com"}'></textarea>
    </div>
  </section>

  <section>
    <div class="row">
      <h3 class="grow">Jobs</h3>
      <select id="statusFilter" onchange="render()">
        <option value="">All statuses</option>
        <option>pending</option>
        <option>running</option>
        <option>completed</option>
        <option>failed</option>
      </select>
      <select id="priorityFilter" onchange="render()">
        <option value="">All priorities</option>
        <option>Low</option>
        <option>Medium</option>
        <option>High</option>
      </select>
    </div>
    <table>
      <thead><tr><th>ID</th><th>Task</th><th>Priority</th><th>Status</th><th>Webhook</th><th>Created</th><th></th></tr></thead>
      <tbody id="jobs"></tbody>
    </table>
  </section>

  <section>
    <h3>Activity (last 7 days)</h3>
    <table>
      <thead><tr><th>Date</th><th>Status</th><th>Jobs</th></tr></thead>
      <tbody id="activity"></tbody>
    </table>
  </section>

  <section>
    <div class="row">
      <h3 class="grow">Webhooks</h3>
      <button onclick="testWebhook()">Send test webhook</button>
    </div>
    <div id="webhookInfo" class="muted"></div>
    <table>
      <thead><tr><th>ID</th><th>Task</th><th>Status</th><th>Sent</th><th>Completed</th></tr></thead>
      <tbody id="webhookLogs"></tbody>
    </table>
  </section>

<script>
const openDetails = new Set();

function esc(s){
  return String(s ?? "").replace(/[&<>"']/g, c => ({"&":"&amp;","<":"&lt;",">":"&gt;","\\"":"&quot;","'":"&#39;"}[c]));
}

function when(ts){
  return ts ? new Date(ts).toLocaleString() : "";
}

async function api(path, options){
  const res = await fetch('/api' + path, options);
  const data = await res.json();
  if(!res.ok) throw new Error(data?.message || res.status);
  return data;
}

async function createJob(){
  const taskName = document.getElementById('taskName').value.trim();
  const priority = document.getElementById('priority').value;
  const raw = document.getElementById('payload').value.trim();
  if(!taskName){ alert("Task name is required"); return; }

  let payload = {};
  if(raw){
    try { payload = JSON.parse(raw); }
    catch(e){ alert("Payload is not valid JSON"); return; }
  }

  try {
    await api('/jobs', {
      method:'POST',
      headers:{'Content-Type':'application/json'},
      body: JSON.stringify({taskName, priority, payload})
    });
  } catch(e) {
    alert("Error: " + e.message);
    return;
  }
  document.getElementById('taskName').value = "";
  document.getElementById('payload').value = "";
  await render();
}

async function runJob(id){
  try { await api('/jobs/' + id + '/run', {method:'POST'}); }
  catch(e){ alert("Error: " + e.message); }
  await render();
}

async function deleteJob(id){
  if(!confirm("Delete job " + id + "?")) return;
  try { await api('/jobs/' + id, {method:'DELETE'}); }
  catch(e){ alert("Error: " + e.message); }
  await render();
}

function toggleDetails(id){
  if(openDetails.has(id)) openDetails.delete(id); else openDetails.add(id);
  render();
}

async function testWebhook(){
  try {
    const r = await api('/test-webhook', {method:'POST'});
    alert("Test webhook delivered (HTTP " + r.status + ")");
  } catch(e) {
    alert("Test webhook failed: " + e.message);
  }
}

function renderCards(o){
  const cards = [
    ["Total", o.totalJobs], ["Pending", o.pendingJobs], ["Running", o.runningJobs],
    ["Completed", o.completedJobs], ["Failed", o.failedJobs], ["Webhooks sent", o.webhooksSent],
  ];
  document.getElementById('cards').innerHTML = cards
    .map(([label, n]) => `<div class="card"><span class="muted">${label}</span><b>${n}</b></div>`)
    .join("");
}

function renderJobs(jobs){
  const body = document.getElementById('jobs');
  if(jobs.length === 0){
    body.innerHTML = '<tr><td colspan="7" class="muted">No jobs yet. Create one above.</td></tr>';
    return;
  }
  body.innerHTML = jobs.map(j => `
    <tr>
      <td>${j.id}</td>
      <td>${esc(j.taskName)}</td>
      <td>${esc(j.priority)}</td>
      <td class="status-${esc(j.status)}">${esc(j.status)}</td>
      <td>${j.status === "completed" ? (j.webhookSent ? "sent" : "failed") : ""}</td>
      <td>${when(j.createdAt)}</td>
      <td>
        ${j.status === "pending" ? `<button onclick="runJob(${j.id})">Run</button>` : ""}
        <button onclick="toggleDetails(${j.id})">${openDetails.has(j.id) ? "Hide" : "Details"}</button>
        <button onclick="deleteJob(${j.id})">Delete</button>
      </td>
    </tr>${openDetails.has(j.id) ? renderDetails(j) : ""}`).join("");
}

function renderDetails(j){
  return `
    <tr class="details">
      <td colspan="7">
        <div class="row muted">
          <span>Created: ${when(j.createdAt)}</span>
          <span>Updated: ${when(j.updatedAt)}</span>
          <span>Completed: ${when(j.completedAt) || "-"}</span>
        </div>
        <pre>${esc(JSON.stringify(j.payload, null, 2))}</pre>
      </td>
    </tr>`;
}

function renderActivity(entries){
  document.getElementById('activity').innerHTML = entries.length === 0
    ? '<tr><td colspan="3" class="muted">No jobs created in the last 7 days.</td></tr>'
    : entries.map(a => `
      <tr>
        <td>${esc(a.date)}</td>
        <td class="status-${esc(a.status)}">${esc(a.status)}</td>
        <td>${a.count}</td>
      </tr>`).join("");
}

function renderWebhooks(info, logs){
  document.getElementById('webhookInfo').innerText = "Target: " + info.url;
  const completed = logs.filter(l => l.status === "completed");
  document.getElementById('webhookLogs').innerHTML = completed.length === 0
    ? '<tr><td colspan="5" class="muted">No completed jobs yet.</td></tr>'
    : completed.map(l => `
      <tr>
        <td>${l.id}</td>
        <td>${esc(l.taskName)}</td>
        <td>${esc(l.status)}</td>
        <td>${l.webhookSent ? "yes" : "no"}</td>
        <td>${when(l.completedAt)}</td>
      </tr>`).join("");
}

async function render(){
  const params = new URLSearchParams();
  const status = document.getElementById('statusFilter').value;
  const priority = document.getElementById('priorityFilter').value;
  if(status) params.set('status', status);
  if(priority) params.set('priority', priority);

  try {
    const [stats, list, logs] = await Promise.all([
      api('/jobs/stats/dashboard'),
      api('/jobs?' + params.toString()),
      api('/webhook-logs'),
    ]);
    renderCards(stats.overview);
    renderJobs(list.jobs);
    renderActivity(stats.activity);
    renderWebhooks(stats.webhookInfo, logs.logs);
  } catch(e) {
    // next refresh will retry
  }
}

// refresh every 3 seconds, matching the simulated run time
setInterval(render, 3000);
render();
</script>
</body>
</html>
"""
