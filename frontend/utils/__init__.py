r"""frontend/utils/__init__.py

Helpers shared by the Streamlit pages."""
