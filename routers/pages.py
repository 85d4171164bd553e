from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse

pages_router = APIRouter(tags=["pages"])

ADMIN_CONSOLE = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Meeting Admin</title></head>
<body>
<h1>Meeting admin</h1>
<form id="createMeeting"><button type="submit">Create meeting (2 hours)</button></form>
<pre id="meetingOut"></pre>
<hr>
<form id="inviteForm">
  Meeting ID: <input name="meetingId" id="meetingId">
  <button type="submit">Issue link</button>
</form>
<pre id="inviteOut"></pre>
<script>
const secret = localStorage.getItem('ADMIN_SECRET') || prompt('ADMIN_SECRET')
localStorage.setItem('ADMIN_SECRET', secret)
const headers = { 'Authorization': 'Bearer ' + secret, 'Content-Type': 'application/json' }
createMeeting.onsubmit = async e => {
  e.preventDefault()
  const r = await fetch('/admin/meetings', { method: 'POST', headers })
  meetingOut.textContent = await r.text()
}
inviteForm.onsubmit = async e => {
  e.preventDefault()
  const id = document.getElementById('meetingId').value
  const r = await fetch('/admin/meetings/' + encodeURIComponent(id) + '/invite', { method: 'POST', headers })
  inviteOut.textContent = await r.text()
}
</script>
</body></html>"""


@pages_router.get("/", response_class=HTMLResponse)
async def admin_console():
    return ADMIN_CONSOLE


@pages_router.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    return "ok"
