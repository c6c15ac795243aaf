"""
vSphere access layer for the tagger.

Contains the SOAP/REST client pair, the process-wide connection manager,
and the tag lookup/attach helpers built on the REST tagging API.
"""
