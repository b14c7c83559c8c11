"""Source templates for the generated download scripts.

One template per (locator kind x destination). Placeholders use
``string.Template`` syntax and always receive ready-made Python literals.
"""

from string import Template

HF_LOCAL_REQUIREMENTS = """
# To install dependencies:
# pip install huggingface-hub
huggingface-hub
"""

URL_LOCAL_REQUIREMENTS = """
# To install dependencies:
# pip install requests tqdm
requests
tqdm
"""

_DRIVE_REQUIREMENTS = """
# To install dependencies:
# pip install -r requirements.txt
$downloader
google-api-python-client
google-auth-httplib2
google-auth-oauthlib
tqdm
"""

HF_DRIVE_REQUIREMENTS = Template(_DRIVE_REQUIREMENTS).substitute(downloader="huggingface-hub")
URL_DRIVE_REQUIREMENTS = Template(_DRIVE_REQUIREMENTS).substitute(downloader="requests")


HF_LOCAL_SCRIPT = Template(r'''
import os

from huggingface_hub import hf_hub_download

# --- Configuration ---
# Hugging Face repository ID
REPO_ID = $repo_id
# The specific file to download
FILENAME = $filename
# Local directory to save the model
DOWNLOAD_DIR = $download_dir


def download_model():
    """Downloads the specified file from the Hugging Face Hub."""
    print("--- Model Downloader (Hugging Face) ---")
    print(f"Repository:  {REPO_ID}")
    print(f"File:        {FILENAME}")
    print(f"Destination: {DOWNLOAD_DIR}")
    print("---------------------------------------")

    try:
        os.makedirs(DOWNLOAD_DIR, exist_ok=True)
    except OSError as e:
        print(f"Error creating directory {DOWNLOAD_DIR}: {e}")
        return

    print("\nStarting download...")
    try:
        # hf_hub_download shows its own progress bar and resumes partial files
        local_path = hf_hub_download(
            repo_id=REPO_ID,
            filename=FILENAME,
            local_dir=DOWNLOAD_DIR,
        )
        print("\nModel downloaded successfully!")
        print(f"   -> Path: {local_path}")
    except Exception as e:
        print(f"\nAn error occurred during download: {e}")
        print("   Please check the repository ID and filename.")


if __name__ == "__main__":
    download_model()
''')


URL_LOCAL_SCRIPT = Template(r'''
import os

import requests
from tqdm import tqdm

# --- Configuration ---
# Direct URL to the model file
URL = $url
# Local directory to save the model
DOWNLOAD_DIR = $download_dir
# Used when the URL path does not end in a file name
FALLBACK_FILENAME = "model.gguf"


def filename_from_url(url):
    return url.split("/")[-1].split("?")[0] or FALLBACK_FILENAME


def download_model_from_url():
    """Downloads a file from a direct URL with a progress bar."""
    filename = filename_from_url(URL)
    file_path = os.path.join(DOWNLOAD_DIR, filename)

    print("--- Model Downloader (Custom URL) ---")
    print(f"URL:         {URL}")
    print(f"Destination: {DOWNLOAD_DIR}")
    print("-------------------------------------")

    try:
        os.makedirs(DOWNLOAD_DIR, exist_ok=True)
    except OSError as e:
        print(f"Error creating directory {DOWNLOAD_DIR}: {e}")
        return

    print(f"\nStarting download of {filename}...")
    try:
        # Stream the body so large files never sit in memory
        with requests.get(URL, stream=True, allow_redirects=True, timeout=60) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("content-length", 0))

            with tqdm(total=total_size, unit="iB", unit_scale=True, unit_divisor=1024, desc=filename) as progress_bar:
                with open(file_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=8192):
                        f.write(chunk)
                        progress_bar.update(len(chunk))

        if total_size != 0 and progress_bar.n != total_size:
            print("\nERROR: Download was incomplete. Please try again.")
        else:
            print("\nModel downloaded successfully!")
            print(f"   -> Path: {file_path}")
    except requests.exceptions.RequestException as e:
        print(f"\nAn error occurred during download: {e}")
        print("   Please check the URL and your network connection.")


if __name__ == "__main__":
    download_model_from_url()
''')


_DRIVE_CONFIG = r'''
# Local directory to temporarily save the model before uploading
DOWNLOAD_DIR = $download_dir
# Google Drive folder name. If empty, saves to the root of 'My Drive'.
GDRIVE_FOLDER_NAME = $gdrive_folder_name
# This file is generated after you authenticate for the first time.
TOKEN_FILE = "token.json"
# Download this file from your Google Cloud Console (see below).
CLIENT_SECRETS_FILE = "credentials.json"
# The scope required for the script to create files on Google Drive.
SCOPES = ["https://www.googleapis.com/auth/drive.file"]


# ==================================================================================
# --- One-Time Setup: Google Drive API Credentials ---
# ==================================================================================
# 1. Go to https://console.cloud.google.com/ and create a new project.
# 2. In your project, search for "Google Drive API" and enable it.
# 3. Go to "APIs & Services" -> "Credentials".
# 4. Click "+ CREATE CREDENTIALS" -> "OAuth client ID".
#    (If asked, configure the OAuth consent screen first and add yourself
#    as a test user.)
# 5. Select "Desktop app" for the Application type and give it a name.
# 6. Click "CREATE". Then click "DOWNLOAD JSON" on the next screen.
# 7. Rename the downloaded file to "credentials.json" and place it in the
#    same directory as this Python script.
#
# You only need to do this once. On the first run a browser window opens so
# you can grant access; the result is cached in "token.json".
# ==================================================================================
'''

_DRIVE_FUNCTIONS = r'''

def get_gdrive_service():
    """Authenticates with Google and returns a Drive service object."""
    creds = None
    if os.path.exists(TOKEN_FILE):
        try:
            creds = Credentials.from_authorized_user_file(TOKEN_FILE, SCOPES)
        except Exception as e:
            print(f"Warning: Could not load token file. {e}")

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except Exception as e:
                print(f"Token refresh failed: {e}")
                creds = None
        else:
            creds = None

        if not creds:
            if not os.path.exists(CLIENT_SECRETS_FILE):
                print("=" * 60)
                print(f"ERROR: '{CLIENT_SECRETS_FILE}' not found.")
                print("Please follow the one-time setup instructions in this script.")
                print("=" * 60)
                return None
            try:
                flow = InstalledAppFlow.from_client_secrets_file(CLIENT_SECRETS_FILE, SCOPES)
                creds = flow.run_local_server(port=0)
            except Exception as e:
                print(f"Error during authentication flow: {e}")
                return None

        # Save the credentials for the next run
        with open(TOKEN_FILE, "w") as token:
            token.write(creds.to_json())

    try:
        return build("drive", "v3", credentials=creds)
    except HttpError as error:
        print(f"An error occurred building the service: {error}")
        return None


def find_or_create_gdrive_folder(service, folder_name):
    """Finds a folder by name on Google Drive, creating it if it doesn't exist."""
    if not folder_name:
        return None  # Save to root 'My Drive'

    escaped_name = folder_name.replace("\\", "\\\\").replace("'", "\\'")
    query = (
        "mimeType='application/vnd.google-apps.folder' "
        f"and name='{escaped_name}' and trashed=false"
    )
    try:
        response = service.files().list(q=query, spaces="drive", fields="files(id, name)").execute()
        folders = response.get("files", [])

        if folders:
            print(f"Found folder '{folder_name}' with ID: {folders[0].get('id')}")
            return folders[0].get("id")

        print(f"Folder '{folder_name}' not found. Creating it...")
        file_metadata = {"name": folder_name, "mimeType": "application/vnd.google-apps.folder"}
        folder = service.files().create(body=file_metadata, fields="id").execute()
        print(f"Created folder with ID: {folder.get('id')}")
        return folder.get("id")
    except HttpError as error:
        print(f"An error occurred finding or creating the folder: {error}")
        return None


def upload_to_gdrive_with_progress(service, local_path, folder_id):
    """Uploads a local file to Google Drive in resumable chunks with a progress bar."""
    file_metadata = {"name": os.path.basename(local_path)}
    if folder_id:
        file_metadata["parents"] = [folder_id]

    file_size = os.path.getsize(local_path)
    print(f"\nUploading {os.path.basename(local_path)} to Google Drive...")

    try:
        media = MediaFileUpload(local_path, resumable=True, chunksize=UPLOAD_CHUNK_SIZE)
        request = service.files().create(body=file_metadata, media_body=media, fields="id")

        with tqdm(total=file_size, unit="B", unit_scale=True, unit_divisor=1024, desc="  Uploading") as pbar:
            response = None
            while response is None:
                status, response = request.next_chunk()
                if status:
                    pbar.update(status.resumable_progress - pbar.n)
            pbar.update(file_size - pbar.n)

        print("\nFile uploaded successfully to Google Drive.")
        return True
    except HttpError as error:
        print(f"\nAn error occurred during upload: {error}")
        return False
'''

_DRIVE_MAIN = r'''

def main():
    """Downloads the model, uploads it to Google Drive and removes the local copy."""
    # Step 1: Download the model file
    local_model_path = download_model_locally()
    if not local_model_path:
        return

    # Step 2: Authenticate with Google Drive
    print("\n--- Step 2: Authenticating with Google Drive ---")
    drive_service = get_gdrive_service()
    if not drive_service:
        print("Could not authenticate with Google Drive. Aborting.")
        return

    # Step 3: Find or create the destination folder
    print("\n--- Step 3: Finding/Creating Google Drive Folder ---")
    destination_folder_id = find_or_create_gdrive_folder(drive_service, GDRIVE_FOLDER_NAME)

    # Step 4: Upload the file
    print("\n--- Step 4: Uploading to Google Drive ---")
    uploaded = upload_to_gdrive_with_progress(drive_service, local_model_path, destination_folder_id)
    if not uploaded:
        print(f"The local copy was kept at: {local_model_path}")
        return

    # Step 5: Clean up the local file
    print("\n--- Step 5: Cleaning up ---")
    try:
        os.remove(local_model_path)
        print(f"Removed temporary local file: {local_model_path}")
    except OSError as e:
        print(f"Error removing temporary file: {e}")


if __name__ == "__main__":
    main()
'''

_DRIVE_IMPORTS = r'''
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload
'''


HF_DRIVE_SCRIPT = Template(r'''
import os

from huggingface_hub import hf_hub_download
from tqdm import tqdm
''' + _DRIVE_IMPORTS + r'''
# ==================================================================================
# --- Configuration ---
# ==================================================================================
# Hugging Face repository ID
REPO_ID = $repo_id
# The specific file to download
FILENAME = $filename''' + _DRIVE_CONFIG + r'''
# Upload chunk size in bytes (must be a multiple of 256 KiB)
UPLOAD_CHUNK_SIZE = 64 * 1024 * 1024


def download_model_locally():
    """Downloads the model from Hugging Face to a local directory."""
    print("--- Step 1: Downloading model from Hugging Face ---")
    try:
        os.makedirs(DOWNLOAD_DIR, exist_ok=True)
        local_path = hf_hub_download(
            repo_id=REPO_ID,
            filename=FILENAME,
            local_dir=DOWNLOAD_DIR,
        )
        print(f"\nModel downloaded successfully to temporary path: {local_path}")
        return local_path
    except Exception as e:
        print(f"\nAn error occurred during download: {e}")
        return None
''' + _DRIVE_FUNCTIONS + _DRIVE_MAIN)


URL_DRIVE_SCRIPT = Template(r'''
import os

import requests
from tqdm import tqdm
''' + _DRIVE_IMPORTS + r'''
# ==================================================================================
# --- Configuration ---
# ==================================================================================
# Direct URL to the model file
URL = $url
# Used when the URL path does not end in a file name
FALLBACK_FILENAME = "model.gguf"''' + _DRIVE_CONFIG + r'''
# Upload chunk size in bytes (must be a multiple of 256 KiB)
UPLOAD_CHUNK_SIZE = 64 * 1024 * 1024


def filename_from_url(url):
    return url.split("/")[-1].split("?")[0] or FALLBACK_FILENAME


def download_model_locally():
    """Downloads the model from the direct URL to a local directory."""
    print("--- Step 1: Downloading model from Custom URL ---")
    filename = filename_from_url(URL)
    local_path = os.path.join(DOWNLOAD_DIR, filename)

    try:
        os.makedirs(DOWNLOAD_DIR, exist_ok=True)
        with requests.get(URL, stream=True, allow_redirects=True, timeout=60) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("content-length", 0))
            with tqdm(total=total_size, unit="iB", unit_scale=True, unit_divisor=1024, desc=filename) as pbar:
                with open(local_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=8192):
                        f.write(chunk)
                        pbar.update(len(chunk))

        if total_size != 0 and pbar.n != total_size:
            print("\nERROR: Download was incomplete. Please try again.")
            return None

        print(f"\nModel downloaded successfully to temporary path: {local_path}")
        return local_path
    except Exception as e:
        print(f"\nAn error occurred during download: {e}")
        return None
''' + _DRIVE_FUNCTIONS + _DRIVE_MAIN)
