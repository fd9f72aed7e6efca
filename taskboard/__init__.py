"""
Task board web application.

Signed-in users manage personal to-do items kept in Firestore (or a SQL
database for local deployments). The FastAPI service hosts a session gate and
a task board per browser session.
"""
