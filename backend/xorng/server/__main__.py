from xorng.server.app import main

main()
