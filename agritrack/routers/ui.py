from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

@router.get("/", response_class=HTMLResponse)
def home():
    return """<!doctype html>
<html lang='en'>
<head>
<meta charset='utf-8'/>
<meta name='viewport' content='width=device-width,initial-scale=1'/>
<title>AgriTrack</title>
<style>
 body{font-family: system-ui, Segoe UI, Arial; margin:18px}
 h2{margin:18px 0 8px}
 fieldset{border:1px solid #ddd; padding:12px; border-radius:10px; margin-bottom:14px}
 label{display:inline-block; min-width:140px}
 input[type=number]{width:120px}
 .row{margin:6px 0}
 .err{color:#b30000}
 .pill{display:inline-block; padding:2px 8px; border-radius:999px; background:#eee; margin-left:8px}
 button{padding:6px 10px; border-radius:8px; border:1px solid #ccc; background:#f7f7f7; cursor:pointer}
 button:hover{background:#efefef}
 .muted{color:#666; font-size:12px}
 .hidden{display:none}
 pre{background:#111; color:#ddd; padding:10px; border-radius:8px; overflow:auto; max-height:320px}
</style>
</head>
<body>
  <h1>AgriTrack</h1>
  <div id="banner" class="err"></div>

  <fieldset id="login_panel">
    <legend>Login</legend>
    <div class="row"><label>Email</label><input id="email" type="email"/></div>
    <div class="row"><label>Password</label><input id="password" type="password"/></div>
    <div class="row"><button onclick="login()">Sign in</button></div>
    <div class="muted">/api/users/login</div>
  </fieldset>

  <div id="app" class="hidden">
    <div class="row">
      <span id="who" class="pill">-</span>
      <button onclick="logout()">Logout</button>
    </div>

    <fieldset>
      <legend>Dashboard</legend>
      <button onclick="show('/dashboard/stats')">Load stats</button>
      <div class="muted">/api/dashboard/stats</div>
    </fieldset>

    <fieldset>
      <legend>Products</legend>
      <button onclick="show('/products')">List products</button>
      <a href="/api/products/export?format=csv">Export CSV</a> |
      <a href="/api/products/export?format=xlsx">Export XLSX</a>
    </fieldset>

    <fieldset>
      <legend>Stock movement</legend>
      <div class="row"><label>Product ID</label><input id="tx_product" type="number"/></div>
      <div class="row"><label>Type</label>
        <select id="tx_type"><option>dispatch</option><option>add</option><option>update</option></select></div>
      <div class="row"><label>Quantity</label><input id="tx_qty" type="number" value="1"/></div>
      <div class="row"><button onclick="createTx()">Save</button>
        <button onclick="show('/transactions')">History</button></div>
    </fieldset>

    <fieldset>
      <legend>Reports</legend>
      <button onclick="show('/reports/inventory')">Inventory report</button>
      <button onclick="show('/reports/transactions')">Transaction report</button>
      <button onclick="show('/reports/recent')">Recent reports</button>
      <button onclick="show('/activity-logs/recent')">Activity</button>
    </fieldset>
  </div>

  <h2>Output</h2>
  <pre id="out"></pre>

<script>
const API = '/api';
const IDLE_MS = 60 * 60 * 1000;      // 1 hora sin actividad => logout
const VERIFY_MS = 5 * 60 * 1000;
let lastActivity = Date.now();

function session(){ try { return JSON.parse(localStorage.getItem('agritrack') || 'null'); } catch(e){ return null; } }
function banner(msg){ document.getElementById('banner').textContent = msg || ''; }
function out(obj){ document.getElementById('out').textContent = JSON.stringify(obj, null, 2); }

async function call(path, opts={}){
  const s = session();
  const headers = Object.assign({'Content-Type':'application/json'}, opts.headers || {});
  if (s && s.token) headers['Authorization'] = 'Bearer ' + s.token;
  let r;
  try { r = await fetch(API + path, Object.assign({}, opts, {headers})); }
  catch(e){ throw new Error('Failed to fetch'); }
  const js = await r.json().catch(() => ({}));
  if (r.status === 401 && s) { logout(); }
  if (!r.ok) throw new Error(js.error || ('HTTP ' + r.status));
  return js;
}

async function show(path){
  banner('');
  try { out(await call(path)); } catch(e){ banner(e.message); }
}

async function login(){
  banner('');
  try {
    const js = await call('/users/login', {method:'POST', body: JSON.stringify({
      email: document.getElementById('email').value,
      password: document.getElementById('password').value})});
    localStorage.setItem('agritrack', JSON.stringify({token: js.token, user: js.user}));
    lastActivity = Date.now();
    render();
  } catch(e){ banner(e.message); }
}

function logout(){ localStorage.removeItem('agritrack'); render(); }

async function createTx(){
  banner('');
  try {
    out(await call('/transactions', {method:'POST', body: JSON.stringify({
      productId: Number(document.getElementById('tx_product').value),
      type: document.getElementById('tx_type').value,
      quantity: Number(document.getElementById('tx_qty').value)})}));
  } catch(e){ banner(e.message); }
}

// guardia de rutas: sólo presencia del token; la firma la valida /users/verify
function render(){
  const s = session();
  document.getElementById('login_panel').classList.toggle('hidden', !!s);
  document.getElementById('app').classList.toggle('hidden', !s);
  document.getElementById('who').textContent = s ? (s.user.name + ' (' + s.user.role + ')') : '-';
}

async function verify(){ if (session()) { try { await call('/users/verify'); } catch(e){ banner(e.message); } } }

['click','keydown','mousemove'].forEach(ev => document.addEventListener(ev, () => { lastActivity = Date.now(); }));
setInterval(() => { if (session() && Date.now() - lastActivity > IDLE_MS) { logout(); banner('Session expired'); } }, 60 * 1000);
setInterval(verify, VERIFY_MS);
render();
verify();
</script>
</body>
</html>"""
