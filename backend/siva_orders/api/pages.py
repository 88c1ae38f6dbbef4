import html
import logging

from fastapi import APIRouter
from starlette.responses import HTMLResponse

from siva_orders.config import settings
from siva_orders.services.validation import JEWELRY_TYPES

logger = logging.getLogger(__name__)
router = APIRouter()

_STYLE = """
    body { font-family: Inter, system-ui, -apple-system, 'Segoe UI', Roboto, 'Helvetica Neue', Arial; background:#faf8f3; padding:24px; color:#1a1a1a }
    .container { max-width:1100px; margin:0 auto; }
    .nav { margin-bottom:18px }
    .nav a { margin-right:12px; color:#B8860B; text-decoration:none }
    h1 { letter-spacing:2px }
    .card { background:white; padding:20px; border-radius:8px; box-shadow:0 1px 3px rgba(0,0,0,0.06); margin-bottom:16px }
    label { display:block; font-size:13px; color:#6b7280; margin-top:10px }
    input, select, textarea { width:100%; padding:8px; border:1px solid #e5e7eb; border-radius:6px; box-sizing:border-box }
    button { background:#D4AF37; color:white; border:0; padding:10px 16px; border-radius:6px; cursor:pointer; margin-top:12px }
    button.secondary { background:#6b7280 }
    .grid { display:grid; grid-template-columns:repeat(2, 1fr); gap:16px }
    .slot { border:2px solid #eee; border-radius:8px; padding:8px; text-align:center; min-height:220px }
    .slot.selected { border-color:#D4AF37 }
    .slot img { max-width:100%; max-height:260px }
    .hidden { display:none }
    table { width:100%; border-collapse:collapse; background:white; border-radius:8px; overflow:hidden }
    th, td { padding:12px; text-align:left; border-bottom:1px solid #eef2f7 }
    thead { background:#f9fafb }
    #toast { position:fixed; right:24px; bottom:24px; padding:12px 16px; border-radius:6px; color:white; display:none }
"""

_BANNER = '<div class="card" style="background:#fff7ed;color:#c2410c">Mode développement - Données de démonstration</div>'

_WIZARD = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Siva Créations - Création sur-mesure</title>
  <style>__STYLE__</style>
</head>
<body>
  <div class="container">
    <div class="nav"><a href="/">Nouvelle demande</a> <a href="/historique">Historique</a></div>
    __BANNER__
    <h1>SIVA CRÉATIONS</h1>

    <div id="step-form" class="card">
      <h2>Votre bijou sur-mesure</h2>
      <form id="intake">
        <label>Prénom</label><input name="firstName" required minlength="2" />
        <label>Nom</label><input name="lastName" required minlength="2" />
        <label>Email</label><input name="email" type="email" required />
        <label>Téléphone (optionnel)</label><input name="phone" />
        <label>Boutique (optionnel)</label><input name="boutiqueName" />
        <label>Type de bijou</label><select name="jewelryType" required>__OPTIONS__</select>
        <label>Style souhaité</label><textarea name="styleDescription" required minlength="10"></textarea>
        <label>Matériaux</label><input name="materials" required minlength="3" />
        <label>Autres remarques (optionnel)</label><textarea name="otherNotes"></textarea>
        <label>Images d'inspiration (URLs, une par ligne, 3 maximum)</label><textarea name="inspirationImageUrls"></textarea>
        <button type="submit">Générer mes propositions</button>
      </form>
    </div>

    <div id="step-images" class="card hidden">
      <h2>Vos propositions</h2>
      <p id="waiting">Vos propositions sont en cours de génération...</p>
      <div class="grid" id="grid"></div>
      <button id="download">Télécharger la proposition</button>
      <button id="finalize" class="secondary">Finaliser la proposition</button>
    </div>

    <div id="step-done" class="card hidden">
      <h2>Proposition finalisée !</h2>
      <p>Votre PDF sera disponible dans l'<a href="/historique">historique</a>.</p>
    </div>
  </div>
  <div id="toast"></div>
  <script>
    var state = { orderId: null, images: [null, null, null, null], selected: null, status: null, poll: null };

    function toast(message, ok) {
      var t = document.getElementById('toast');
      t.textContent = message;
      t.style.background = ok ? '#16a34a' : '#dc2626';
      t.style.display = 'block';
      setTimeout(function(){ t.style.display = 'none'; }, 5000);
    }

    function show(step) {
      ['form', 'images', 'done'].forEach(function(s){
        document.getElementById('step-' + s).classList.toggle('hidden', s !== step);
      });
      if (step !== 'images') { stopWatching(); }
    }

    function postJson(url, body) {
      return fetch(url, { method: 'POST', headers: { 'Content-Type': 'application/json' }, body: JSON.stringify(body) });
    }

    function renderGrid() {
      var grid = document.getElementById('grid');
      grid.innerHTML = '';
      var count = 0;
      state.images.forEach(function(url, i){
        var slot = document.createElement('div');
        slot.className = 'slot' + (state.selected === i ? ' selected' : '');
        if (url) {
          count += 1;
          var img = document.createElement('img');
          img.src = url;
          img.alt = 'Proposition ' + (i + 1);
          slot.appendChild(img);
          slot.appendChild(document.createElement('br'));
          var pick = document.createElement('button');
          pick.textContent = 'Choisir';
          pick.onclick = function(){ state.selected = i; renderGrid(); };
          var edit = document.createElement('button');
          edit.textContent = 'Modifier';
          edit.className = 'secondary';
          edit.onclick = function(){ editImage(i); };
          slot.appendChild(pick);
          slot.appendChild(edit);
        } else {
          slot.textContent = 'Proposition ' + (i + 1) + ' en préparation...';
        }
        grid.appendChild(slot);
      });
      document.getElementById('waiting').classList.toggle('hidden', count > 0);
    }

    // long-poll loop; aborting the controller cancels the server-side wait
    function watch() {
      if (!state.orderId || !state.poll) { return; }
      var known = state.images.filter(Boolean).length;
      var url = '/orders/' + encodeURIComponent(state.orderId) + '/wait?known=' + known + (state.status ? '&since=' + state.status : '');
      fetch(url, { signal: state.poll.signal }).then(function(r){ return r.json(); }).then(function(body){
        if (body.success) {
          var before = state.images.filter(Boolean).length;
          state.images = body.order.images;
          state.status = body.order.status;
          renderGrid();
          if (before === 0 && state.images.filter(Boolean).length > 0) { toast('Vos créations personnalisées sont disponibles', true); }
        }
        watch();
      }).catch(function(err){
        if (err.name !== 'AbortError') { setTimeout(watch, 3000); }
      });
    }

    function startWatching() { stopWatching(); state.poll = new AbortController(); watch(); }
    function stopWatching() { if (state.poll) { state.poll.abort(); state.poll = null; } }
    window.addEventListener('pagehide', stopWatching);

    function editImage(i) {
      var instruction = prompt('Quelles modifications souhaitez-vous ? (5 caractères minimum)');
      if (!instruction) { return; }
      postJson('/webhooks/edit-image', { orderId: state.orderId, imageIndex: i, instruction: instruction })
        .then(function(r){ return r.json(); })
        .then(function(body){ toast(body.success ? 'Votre image est en cours de personnalisation...' : (body.error || "Impossible de modifier l'image"), body.success); })
        .catch(function(){ toast("Impossible de modifier l'image", false); });
    }

    document.getElementById('intake').addEventListener('submit', function(e){
      e.preventDefault();
      var data = Object.fromEntries(new FormData(e.target).entries());
      data.inspirationImageUrls = (data.inspirationImageUrls || '').split('\\n').map(function(s){ return s.trim(); }).filter(Boolean);
      postJson('/orders', data).then(function(r){ return r.json(); }).then(function(body){
        if (!body.success) { toast(body.error || 'Impossible de créer votre commande', false); return; }
        state.orderId = body.orderId;
        toast(body.mockMode ? 'Mode développement - Simulation de création' : 'Vos propositions sont en cours de génération...', true);
        show('images');
        renderGrid();
        startWatching();
      }).catch(function(){ toast('Impossible de créer votre commande', false); });
    });

    document.getElementById('download').addEventListener('click', function(){
      if (state.selected === null) { toast('Choisissez une proposition', false); return; }
      postJson('/pdf/download', { orderId: state.orderId, selectedImageIndex: state.selected }).then(function(r){
        if (!r.ok) { throw new Error('download failed'); }
        var disposition = r.headers.get('Content-Disposition') || '';
        var match = disposition.match(/filename="([^"]+)"/);
        return r.blob().then(function(blob){
          var a = document.createElement('a');
          a.href = URL.createObjectURL(blob);
          a.download = match ? match[1] : 'proposition.pdf';
          a.click();
        });
      }).catch(function(){ toast('Impossible de générer le PDF', false); });
    });

    document.getElementById('finalize').addEventListener('click', function(){
      if (state.selected === null) { toast('Choisissez une proposition', false); return; }
      postJson('/webhooks/generate-pdf', { orderId: state.orderId, selectedImageIndex: state.selected })
        .then(function(r){ return r.json(); })
        .then(function(body){
          if (!body.success) { toast(body.error || 'Impossible de générer le PDF', false); return; }
          toast('Votre proposition sera bientôt prête', true);
          show('done');
        }).catch(function(){ toast('Impossible de générer le PDF', false); });
    });
  </script>
</body>
</html>
"""

_HISTORY = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Siva Créations - Historique</title>
  <style>__STYLE__</style>
</head>
<body>
  <div class="container">
    <div class="nav"><a href="/">Nouvelle demande</a> <a href="/historique">Historique</a></div>
    __BANNER__
    <h1>Historique des commandes</h1>
    <table>
      <thead><tr><th>Date</th><th>Client</th><th>Demande</th><th>Statut</th><th>Images</th><th></th></tr></thead>
      <tbody id="rows"></tbody>
    </table>
  </div>
  <div id="toast"></div>
  <script>
    var LABELS = { generating: 'En génération', images_ready: 'Images prêtes', pdf_ready: 'PDF prêt', sent: 'Envoyée' };

    function toast(message, ok) {
      var t = document.getElementById('toast');
      t.textContent = message;
      t.style.background = ok ? '#16a34a' : '#dc2626';
      t.style.display = 'block';
      setTimeout(function(){ t.style.display = 'none'; }, 5000);
    }

    function esc(s) {
      return String(s == null ? '' : s).replace(/[&<>"']/g, function(c){ return '&#' + c.charCodeAt(0) + ';'; });
    }

    function action(label, fn) {
      var b = document.createElement('button');
      b.textContent = label;
      b.onclick = fn;
      return b;
    }

    function load() {
      fetch('/orders').then(function(r){ return r.json(); }).then(function(body){
        var tbody = document.getElementById('rows');
        tbody.innerHTML = '';
        (body.orders || []).forEach(function(o){
          var tr = document.createElement('tr');
          var created = o.created_at ? new Date(o.created_at).toLocaleDateString('fr-FR') : '';
          var images = o.images.filter(Boolean).length;
          tr.innerHTML = '<td>' + esc(created) + '</td><td>' + esc(o.client) + '<br/><small>' + esc(o.email) + '</small></td>' +
            '<td><small>' + esc(o.demande).replace(/\\n/g, '<br/>') + '</small></td><td>' + esc(LABELS[o.status] || o.status) + '</td>' +
            '<td>' + images + '/4</td>';
          var td = document.createElement('td');
          if (o.pdf_url) {
            td.appendChild(action('PDF', function(){ window.open(o.pdf_url, '_blank'); }));
            td.appendChild(action('Envoyer', function(){ send(o); }));
          }
          td.appendChild(action('Supprimer', function(){ remove(o); }));
          tr.appendChild(td);
          tbody.appendChild(tr);
        });
      }).catch(function(){ toast('Impossible de charger les commandes', false); });
    }

    function send(o) {
      if (!o.email) { toast('Aucun email trouvé pour cette commande', false); return; }
      fetch('/webhooks/send-proposal', { method: 'POST', headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ orderId: o.id, recipientEmail: o.email }) })
        .then(function(r){ return r.json(); })
        .then(function(body){ toast(body.success ? 'Proposition envoyée avec succès !' : (body.error || "Erreur lors de l'envoi"), body.success); load(); });
    }

    function remove(o) {
      if (!confirm('Êtes-vous sûr de vouloir supprimer cette commande ?')) { return; }
      fetch('/orders/' + encodeURIComponent(o.id), { method: 'DELETE' }).then(function(r){
        if (r.ok) { load(); } else { toast('Impossible de supprimer la commande', false); }
      });
    }

    load();
  </script>
</body>
</html>
"""


def _render(template: str) -> str:
    banner = _BANNER if settings.mock_mode else ""
    return template.replace("__STYLE__", _STYLE).replace("__BANNER__", banner)


def render_wizard_html() -> str:
    options = "".join(
        f'<option value="{html.escape(t, quote=True)}">{html.escape(t)}</option>' for t in JEWELRY_TYPES
    )
    return _render(_WIZARD).replace("__OPTIONS__", options)


def render_history_html() -> str:
    return _render(_HISTORY)


@router.get("/", response_class=HTMLResponse)
async def wizard():
    return HTMLResponse(content=render_wizard_html())


@router.get("/historique", response_class=HTMLResponse)
async def history():
    return HTMLResponse(content=render_history_html())


@router.get("/health")
async def health():
    return {"status": "ok", "service": "siva-orders"}
