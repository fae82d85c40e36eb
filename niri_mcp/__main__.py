from niri_mcp.server import main

main()
