"""
Deploy Auditor: post-deployment diagnostics and remediation planning for a
multi-tier web application tree.

Every checker is read-only. It inspects files, permissions and (optionally) a
relational store, writes a `<category>-results.json` report, and never
modifies the audited deployment. The remediation synthesizer turns those
reports into a prioritized fix plan with generated payloads.
"""
