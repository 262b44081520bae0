"""Decoding and exporting the BT Smart Hub 2 connection status page.

The hub serves `/nonAuth/wan_conn.xml` without a login. Each interesting value sits in the `value` attribute
of a node under `<status>` and is URL-encoded, sometimes as a quoted pseudo-array of `;`-separated rows.
Only tested against the Smart Hub 2 but other BT hubs serving the same page should work as well.
"""
