# Streamlit UI
