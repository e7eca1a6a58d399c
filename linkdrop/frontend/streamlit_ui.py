import streamlit as st
from streamlit.errors import StreamlitAPIException

from linkdrop.config import ClientSettings, configure_logging
from linkdrop.frontend.api import ApiClient
from linkdrop.frontend.download import DownloadFlow, DownloadStatus
from linkdrop.frontend.errors import UploadInProgressError
from linkdrop.frontend.models import SelectedFile
from linkdrop.frontend.notify import StreamlitNotifier
from linkdrop.frontend.upload import UploadFlow, format_size

configure_logging()

# 🔗 Use secrets or environment fallback
try:
    API_URL = st.secrets.get("API_URL") or ClientSettings.from_env().api_url
except (FileNotFoundError, StreamlitAPIException):  # no secrets.toml
    API_URL = ClientSettings.from_env().api_url

st.set_page_config(page_title="Share Files", page_icon="📂")


def get_client():
    if "client" not in st.session_state:
        st.session_state.client = ApiClient(API_URL)
    return st.session_state.client


def get_upload_flow():
    if "upload_flow" not in st.session_state:
        st.session_state.upload_flow = UploadFlow(get_client(), StreamlitNotifier(st))
    return st.session_state.upload_flow


# ------------------
# Upload Page
# ------------------
def upload_page():
    st.title("📂 Share Files Securely")
    st.write(
        "Upload files up to 100MB and share them with anyone using a link "
        "that automatically expires."
    )

    flow = get_upload_flow()

    uploaded_file = st.file_uploader("Drag and drop your file here, or browse to upload")
    if uploaded_file is None:
        flow.remove()
    else:
        flow.select(SelectedFile.from_upload(uploaded_file))

    if flow.file is not None:
        st.caption(f"📄 {flow.file.name} ({format_size(flow.file.size)})")

    error_placeholder = st.empty()
    upload_progress = st.empty()

    shown = []

    def show_progress(value):
        # called for every chunk; redraw only when the percent moves
        if not shown or shown[-1] != value:
            shown.append(value)
            upload_progress.progress(value, text=f"{value}%")

    flow.on_progress = show_progress

    label = "Uploading..." if flow.uploading else "🚀 Upload File"
    if st.button(label, disabled=not flow.can_upload, use_container_width=True):
        try:
            flow.upload()
        except UploadInProgressError as e:
            st.warning(e.message)
        upload_progress.empty()

    if flow.error:
        error_placeholder.error(f"❌ {flow.error}")

    if flow.download_url:
        st.success("✅ File uploaded successfully!")
        st.write("Your file is now available at this link:")
        # st.code ships a copy-to-clipboard button for the exact text
        st.code(flow.download_url, language=None)
        st.image(flow.qr_png(), caption="Scan to Download", width=200)
        st.caption("⏳ This link will expire in 7 days")


# ------------------
# Download Page
# ------------------
def download_page(short_code):
    client = get_client()
    targets = []
    flow = DownloadFlow(client, short_code, navigate=targets.append)

    title = st.empty()
    body = st.empty()
    title.header(f"🔄 {flow.title}")
    body.write(flow.message)

    with st.spinner("Checking your link..."):
        flow.start()
        if not flow.wait(timeout=client.timeout + flow.delay + 5):
            flow.cancel()

    icon = {
        DownloadStatus.SUCCESS: "⬇️",
        DownloadStatus.ERROR: "⚠️",
        DownloadStatus.EXPIRED: "⌛",
    }.get(flow.status, "🔄")
    title.header(f"{icon} {flow.title}")
    body.write(flow.message)

    if targets:
        url = targets[0]
        st.markdown(f'<meta http-equiv="refresh" content="0; url={url}">', unsafe_allow_html=True)
        st.link_button("🔗 Download File", url)
    elif flow.status.terminal:
        st.link_button("Upload New File", "/")


short_code = st.query_params.get("code")
if short_code:
    download_page(short_code)
else:
    upload_page()
