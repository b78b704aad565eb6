"""
Bot Flow Builder.

Backend for a visual chatbot flow builder. This package provides:

1. Blocks:
   - Start / End (singletons)
   - Send Message, Ask Question
   - External integration (CRM hand-off)
   - AI Agent (multi-output decision block)

2. Canvas:
   - Graph level assignment from block connections
   - Auto-layout with branch fan-out
   - Assistant tool-call editing (add, update, remove, show form)
   - Flow validation

3. Preview:
   - Deterministic conversation simulator
   - Variable interpolation
   - Session management with cancellable scheduling

API:
   - POST /layout - Lay out a block list
   - POST /bots - Create a bot (empty or from template)
   - POST /bots/{id}/actions - Apply assistant tool calls
   - POST /bots/{id}/validate - Validate a bot
   - POST /previews - Start a preview session
   - POST /previews/{id}/answer - Answer the pending question
   - POST /previews/{id}/restart - Restart a preview
   - DELETE /previews/{id} - Close a preview
"""

__version__ = "1.0.0"
